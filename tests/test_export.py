"""
Tests for the record export endpoint.
"""

import io
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient
from openpyxl import load_workbook
from sqlalchemy.exc import OperationalError

from hkidash.core.config import settings
from hkidash.core.exceptions import FilterQueryError

API = settings.api_v1_prefix


@pytest.mark.asyncio
async def test_export_scenario(client: AsyncClient, admin_headers, seeded_records):
    response = await client.get(
        f"{API}/records/export?format=csv&columns=title,applicant_name&year=2023",
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.text == "Nama HKI,Nama Pemohon\nA,X"
    assert response.headers["content-type"].startswith("text/csv")
    disposition = response.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="hki-export_year_')
    assert disposition.endswith('.csv"')


@pytest.mark.asyncio
async def test_export_ignores_pagination_and_sort(client: AsyncClient, admin_headers, make_record):
    for title in ("Satu", "Dua", "Tiga"):
        await make_record(title)

    response = await client.get(
        f"{API}/records/export?columns=title&pageSize=1&page=2&sortBy=title&sortOrder=desc",
        headers=admin_headers,
    )

    assert response.text == "Nama HKI\nSatu\nDua\nTiga"


@pytest.mark.asyncio
async def test_export_all_columns_by_default(client: AsyncClient, admin_headers, seeded_records):
    response = await client.get(f"{API}/records/export", headers=admin_headers)

    header, *rows = response.text.split("\n")
    assert header.startswith("ID,Nama HKI")
    assert len(rows) == 2
    assert 'filename="hki-export_semua-data_' in response.headers["content-disposition"]


@pytest.mark.asyncio
async def test_export_escapes_fields(client: AsyncClient, admin_headers, make_record):
    await make_record('Kopi "Gayo", Aceh', applicant="Budi")

    response = await client.get(
        f"{API}/records/export?columns=title,applicant_name", headers=admin_headers
    )

    assert response.text == 'Nama HKI,Nama Pemohon\n"Kopi ""Gayo"", Aceh",Budi'


@pytest.mark.asyncio
async def test_export_xlsx(client: AsyncClient, admin_headers, seeded_records):
    response = await client.get(
        f"{API}/records/export?format=xlsx&columns=title,year,status_name", headers=admin_headers
    )

    assert response.status_code == 200
    assert "spreadsheetml" in response.headers["content-type"]
    sheet = load_workbook(io.BytesIO(response.content)).active
    assert list(sheet.iter_rows(values_only=True)) == [
        ("Nama HKI", "Tahun Fasilitasi", "Status"),
        ("A", 2023, "Diterima"),
        ("B", 2024, "Ditolak"),
    ]


@pytest.mark.asyncio
async def test_no_matching_records(client: AsyncClient, admin_headers, seeded_records):
    response = await client.get(f"{API}/records/export?year=1999", headers=admin_headers)

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NO_MATCHING_RECORDS"


@pytest.mark.asyncio
async def test_too_many_rows(client: AsyncClient, admin_headers, seeded_records, monkeypatch):
    monkeypatch.setattr(settings, "export_max_rows", 1)

    response = await client.get(f"{API}/records/export", headers=admin_headers)

    assert response.status_code == 413
    assert response.json()["error"]["details"] == {"count": 2, "limit": 1}


@pytest.mark.asyncio
async def test_unknown_columns(client: AsyncClient, admin_headers, seeded_records):
    response = await client.get(f"{API}/records/export?columns=password,secret", headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "NO_COLUMNS_SELECTED"


@pytest.mark.asyncio
async def test_unknown_format(client: AsyncClient, admin_headers, seeded_records):
    response = await client.get(f"{API}/records/export?format=pdf", headers=admin_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_export_requires_admin(client: AsyncClient, auth_headers, seeded_records):
    response = await client.get(f"{API}/records/export", headers=auth_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_export_search_failure_is_server_error(client: AsyncClient, admin_headers, seeded_records, mocker):
    mocker.patch(
        "hkidash.services.export_service.search_record_ids",
        AsyncMock(side_effect=FilterQueryError(OperationalError("SELECT", {}, Exception("timeout")))),
    )

    response = await client.get(f"{API}/records/export?year=2023", headers=admin_headers)

    assert response.status_code == 500
    error = response.json()["error"]
    assert error["code"] == "FILTER_QUERY_FAILED"
    assert error["message"] == "Gagal mencari data HKI dengan filter yang diberikan."
