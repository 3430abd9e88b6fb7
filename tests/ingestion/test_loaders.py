import pandas as pd
import pytest

from order_desk.ingestion import NoValidRowsError, import_leads, rows_to_lead_rows
from order_desk.ingestion.loaders import (
    UnsupportedFileTypeError,
    extract_field,
    load_lead_rows,
    normalize_header,
)
from order_desk.models import LeadStatus
from order_desk.repository import LeadRepository
from order_desk.storage import InMemoryStore


@pytest.fixture()
def sample_dataframe():
    return pd.DataFrame(
        [
            {"Recipient Name": "Ada", "Recipient Phone": "+8801711000001", "Recipient Address": "Gulshan"},
            {"Recipient Name": "", "Recipient Phone": "01711-000002", "Recipient Address": ""},
            {"Recipient Name": "Bad", "Recipient Phone": "12345", "Recipient Address": "Nowhere"},
            {"Recipient Name": "", "Recipient Phone": "", "Recipient Address": ""},
        ]
    )


def test_load_lead_rows_from_csv_keeps_leading_zeros(tmp_path):
    csv_path = tmp_path / "leads.csv"
    csv_path.write_text("Phone,Name\n01711000001,Ada\n,\n01811000002,Grace\n", encoding="utf-8")

    rows = load_lead_rows(csv_path)

    assert len(rows) == 2
    assert rows[0]["Phone"] == "01711000001"
    assert extract_field(rows[1], "name") == "Grace"


def test_import_leads_from_excel_with_recipient_headers(sample_dataframe, tmp_path, clock):
    excel_path = tmp_path / "leads.xlsx"
    sample_dataframe.to_excel(excel_path, index=False)
    repository = LeadRepository(InMemoryStore(clock=clock))

    report = import_leads(excel_path, repository)

    assert report.created_count == 2
    assert report.skipped == 1
    stored = sorted(repository.list(), key=lambda lead: lead.phone_number)
    assert [lead.phone_number for lead in stored] == ["01711000001", "01711000002"]
    assert stored[0].customer_name == "Ada"
    assert stored[0].address == "Gulshan"
    assert stored[1].customer_name == "Prospect"
    assert all(lead.status is LeadStatus.PENDING and lead.moderator_id is None for lead in stored)


def test_earlier_synonym_wins_over_column_position():
    row = {"Mobile": "01911000000", "Phone": "01711000000", "Customer": "Fallback", "Name": "Primary"}

    assert extract_field(row, "phone") == "01711000000"
    assert extract_field(row, "name") == "Primary"


def test_header_matching_ignores_case_spacing_and_underscores():
    assert normalize_header(" Phone_Number ") == "phonenumber"
    assert extract_field({"CUSTOMER PHONE": "01711000000"}, "phone") == "01711000000"


def test_rows_without_valid_phone_are_counted_as_skipped():
    lead_rows, skipped = rows_to_lead_rows([{"phone": "01711000000"}, {"phone": "n/a"}, {"name": "No phone"}])

    assert [row["phone_number"] for row in lead_rows] == ["01711000000"]
    assert skipped == 2


def test_import_without_any_valid_row_writes_nothing(tmp_path, clock):
    csv_path = tmp_path / "empty.csv"
    csv_path.write_text("Phone,Name\n123,Nobody\n", encoding="utf-8")
    store = InMemoryStore(clock=clock)

    with pytest.raises(NoValidRowsError):
        import_leads(csv_path, LeadRepository(store))

    assert store.select_all("leads") == []


def test_unsupported_file_extension(tmp_path):
    bad_path = tmp_path / "leads.json"
    bad_path.write_text("{}", encoding="utf-8")

    with pytest.raises(UnsupportedFileTypeError):
        load_lead_rows(bad_path)
