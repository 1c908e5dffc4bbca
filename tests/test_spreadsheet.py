import io

import pandas as pd
import pytest

from riskregister.config import RegisterSettings
from riskregister.models.schemas import (
    Project,
    ProjectMeta,
    RiskPriority,
    RiskResponse,
    RiskStatus,
    StatusChange,
)
from riskregister.services.errors import ImportFormatError
from riskregister.services.exchange.spreadsheet import (
    RISK_COLUMNS,
    export_csv,
    export_xlsx,
    parse_import,
    read_sheets,
)


def test_csv_export_header_and_row(make_risk) -> None:
    project = Project(id="p1", risks=[make_risk(probability=2, impact=5)])
    lines = export_csv(project).decode("utf-8").splitlines()
    assert lines[0] == ",".join(RISK_COLUMNS)
    assert lines[1].startswith("r1,Vendor delay,Hardware arrives late,Schedule,2,5,")
    assert len(lines) == 2


def test_csv_import_applies_defaults() -> None:
    payload = (
        "id,title,probability,impact,status,priority,response,dateIdentified\n"
        "x1,Scope creep,0,9,Bogus,,Transfer,\n"
        ",Budget cut,4,abc,Mitigated,Low,,2024-02-01\n"
    ).encode("utf-8")

    result = parse_import("risks.csv", payload)
    assert result.meta is None
    first, second = result.risks

    assert first.id == "x1"
    assert first.probability == 1
    assert first.impact == 5
    assert first.status == RiskStatus.OPEN
    assert first.priority == RiskPriority.MEDIUM
    assert first.response == RiskResponse.TRANSFER
    assert first.date_identified is not None

    assert second.id and second.id != "x1"
    assert second.impact == 1
    assert second.status == RiskStatus.MITIGATED
    assert second.priority == RiskPriority.LOW
    assert second.date_identified.isoformat() == "2024-02-01T00:00:00+00:00"
    assert second.description == ""


def test_empty_csv_imports_nothing() -> None:
    assert parse_import("risks.csv", b"").risks == []
    assert parse_import("risks.csv", b"id,title\n").risks == []


def test_xlsx_keeps_meta_and_history(make_risk) -> None:
    risk = make_risk(
        status=RiskStatus.IN_PROGRESS,
        status_history=[
            StatusChange(date="2024-01-01", status=RiskStatus.OPEN, note="raised"),
            StatusChange(date="2024-01-09", status=RiskStatus.IN_PROGRESS),
        ],
    )
    meta = ProjectMeta(
        project_name="Data Center Migration",
        project_manager="Sari",
        start_date="2024-01-01",
        end_date="2024-06-30",
    )
    payload = export_xlsx(Project(id="p1", meta=meta, risks=[risk]))

    sheets = read_sheets("risks.xlsx", payload)
    assert list(sheets) == ["Meta", "Risks"]

    result = parse_import("risks.xlsx", payload)
    assert result.meta.project_name == "Data Center Migration"
    assert result.meta.start_date.isoformat() == "2024-01-01"
    assert result.meta.end_date.isoformat() == "2024-06-30"

    (imported,) = result.risks
    assert imported.status == RiskStatus.IN_PROGRESS
    assert [h.status for h in imported.status_history] == [
        RiskStatus.OPEN,
        RiskStatus.IN_PROGRESS,
    ]
    assert imported.status_history[0].note == "raised"
    assert imported.score == 9


def test_unsupported_extension() -> None:
    with pytest.raises(ImportFormatError):
        parse_import("risks.pdf", b"%PDF-1.4")


def test_corrupt_workbook() -> None:
    with pytest.raises(ImportFormatError):
        parse_import("risks.xlsx", b"definitely not a zip archive")


def test_row_limit() -> None:
    payload = b"title\na\nb\n"
    with pytest.raises(ImportFormatError):
        parse_import("risks.csv", payload, RegisterSettings(max_import_rows=1))


def test_csv_import_reads_non_iso_dates() -> None:
    payload = (
        "id,title,dateIdentified,dateResolved\n"
        "A,Excel export,01/15/2024,03/01/2024\n"
        'B,Long form,"Jan 15, 2024",2024-03-01\n'
        "C,Garbage,unknown,\n"
    ).encode("utf-8")

    a, b, c = parse_import("risks.csv", payload).risks

    assert a.date_identified.isoformat() == "2024-01-15T00:00:00+00:00"
    assert a.date_resolved.isoformat() == "2024-03-01T00:00:00+00:00"
    assert b.date_identified.isoformat() == "2024-01-15T00:00:00+00:00"
    assert b.date_resolved.isoformat() == "2024-03-01T00:00:00+00:00"
    # tidak terbaca → default "sekarang", resolved kosong
    assert c.date_identified.year >= 2024
    assert c.date_resolved is None


def test_meta_sheet_reads_non_iso_dates() -> None:
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        pd.DataFrame(
            [{"projectName": "Alpha", "startDate": "02/01/2024", "endDate": "June 30, 2024"}]
        ).to_excel(writer, sheet_name="Meta", index=False)
        pd.DataFrame(columns=RISK_COLUMNS).to_excel(writer, sheet_name="Risks", index=False)

    result = parse_import("risks.xlsx", output.getvalue())
    assert result.risks == []
    assert result.meta.project_name == "Alpha"
    assert result.meta.start_date.isoformat() == "2024-02-01"
    assert result.meta.end_date.isoformat() == "2024-06-30"
