"""
Tests for record listing, detail and filter option endpoints.
"""

from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from hkidash.core.config import settings
from hkidash.core.exceptions import HydrationError
from hkidash.services.record_query import search_record_ids
from hkidash.table.state import RecordFilters

API = settings.api_v1_prefix


def titles(response) -> list[str]:
    return [record["title"] for record in response.json()["records"]]


@pytest.mark.asyncio
async def test_list_requires_auth(client: AsyncClient):
    response = await client.get(f"{API}/records")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTHENTICATION_REQUIRED"


@pytest.mark.asyncio
async def test_list_rejects_bad_token(client: AsyncClient):
    response = await client.get(f"{API}/records", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_filter_by_status_scenario(
    client: AsyncClient, auth_headers, reference_data, seeded_records
):
    accepted_id = reference_data.statuses["Diterima"].id

    response = await client.get(
        f"{API}/records?statusId={accepted_id}&pageSize=10&page=1",
        headers=auth_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["totalCount"] == 1
    assert titles(response) == ["A"]
    record = body["records"][0]
    assert record["applicant"]["name"] == "X"
    assert record["status"]["name"] == "Diterima"
    assert record["year"] == 2023
    assert body["query"] == f"statusId={accepted_id}"


@pytest.mark.asyncio
async def test_default_listing_newest_first(client: AsyncClient, auth_headers, seeded_records):
    response = await client.get(f"{API}/records", headers=auth_headers)

    body = response.json()
    assert body["totalCount"] == 2
    assert body["page"] == 1
    assert body["pageSize"] == 10
    assert body["query"] == ""
    assert titles(response) == ["B", "A"]


@pytest.mark.asyncio
async def test_search_matches_title_or_applicant(
    client: AsyncClient, auth_headers, make_record
):
    await make_record("Kopi Gayo", applicant="Budi")
    await make_record("Batik Tulis", applicant="Koperasi Sejahtera")
    await make_record("Keripik", applicant="Sari")

    response = await client.get(f"{API}/records?search=kop", headers=auth_headers)

    assert response.json()["totalCount"] == 2
    assert sorted(titles(response)) == ["Batik Tulis", "Kopi Gayo"]


@pytest.mark.asyncio
async def test_search_wildcards_are_literal(client: AsyncClient, auth_headers, make_record):
    await make_record("Diskon 100%")
    await make_record("Biasa")

    response = await client.get(f"{API}/records?search=%25", headers=auth_headers)

    assert titles(response) == ["Diskon 100%"]


@pytest.mark.asyncio
async def test_sort_by_title_ascending(client: AsyncClient, auth_headers, make_record):
    for title in ("Cendol", "Apem", "Bakpia"):
        await make_record(title)

    response = await client.get(f"{API}/records?sortBy=title&sortOrder=asc", headers=auth_headers)

    assert titles(response) == ["Apem", "Bakpia", "Cendol"]


@pytest.mark.asyncio
@pytest.mark.parametrize("sort_by", ["DROP TABLE filing_records", "nama_hki", "id"])
async def test_unknown_sort_falls_back_to_created_at(
    client: AsyncClient, auth_headers, seeded_records, sort_by
):
    response = await client.get(
        f"{API}/records", params={"sortBy": sort_by, "sortOrder": "asc"}, headers=auth_headers
    )

    assert response.status_code == 200
    assert titles(response) == ["A", "B"]
    assert response.json()["query"] == "sortOrder=asc"


@pytest.mark.asyncio
async def test_pagination(client: AsyncClient, auth_headers, make_record):
    for i in range(7):
        await make_record(f"Produk {i}")

    response = await client.get(
        f"{API}/records?pageSize=3&page=3&sortBy=createdAt&sortOrder=asc",
        headers=auth_headers,
    )

    body = response.json()
    assert body["totalCount"] == 7
    assert titles(response) == ["Produk 6"]


@pytest.mark.asyncio
async def test_filtered_pagination_counts_every_match(
    client: AsyncClient, auth_headers, make_record, reference_data
):
    for i in range(5):
        await make_record(f"Merek {i}", year=2022)
    await make_record("Lain", year=2021)

    response = await client.get(f"{API}/records?year=2022&pageSize=2&page=2", headers=auth_headers)

    assert response.json()["totalCount"] == 5
    assert len(response.json()["records"]) == 2


@pytest.mark.asyncio
async def test_count_matches_identifier_search(
    client: AsyncClient, auth_headers, db_session: AsyncSession, make_record, reference_data
):
    await make_record("Kopi", applicant="Andi", year=2023)
    await make_record("Teh", applicant="Kopi Nusantara", year=2023)
    await make_record("Kopi Susu", applicant="Andi", year=2024)

    filters = RecordFilters(search="kopi", year=2023)
    found = await search_record_ids(db_session, filters)
    response = await client.get(f"{API}/records?search=kopi&year=2023&pageSize=1", headers=auth_headers)

    assert found.total_count == len(found.ids) == 2
    assert response.json()["totalCount"] == found.total_count


@pytest.mark.asyncio
async def test_malformed_params_fall_back(client: AsyncClient, auth_headers, seeded_records):
    response = await client.get(
        f"{API}/records?page=-3&pageSize=abc&year=twenty&statusId=",
        headers=auth_headers,
    )

    body = response.json()
    assert response.status_code == 200
    assert body["page"] == 1
    assert body["pageSize"] == 10
    assert body["totalCount"] == 2


@pytest.mark.asyncio
async def test_get_record_detail(client: AsyncClient, auth_headers, make_record):
    record = await make_record("Tenun", class_id=25)

    response = await client.get(f"{API}/records/{record.id}", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "Tenun"
    assert body["ipClass"]["label"] == "25 - Pakaian, alas kaki (Goods)"
    assert body["ipType"]["name"] == "Merek"
    assert "createdAt" in body


@pytest.mark.asyncio
async def test_get_missing_record(client: AsyncClient, auth_headers, reference_data):
    response = await client.get(f"{API}/records/9999", headers=auth_headers)
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_filter_options(client: AsyncClient, auth_headers, seeded_records):
    response = await client.get(f"{API}/records/options", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert [s["name"] for s in body["statuses"]] == ["Diterima", "Didaftar", "Dalam Proses", "Ditolak"]
    assert body["years"] == [2024, 2023]
    assert [t["name"] for t in body["types"]] == ["Hak Cipta", "Merek"]
    assert [c["id"] for c in body["classes"]] == [25, 43]


@pytest.mark.asyncio
async def test_hydration_failure_is_server_error(client: AsyncClient, auth_headers, seeded_records, mocker):
    mocker.patch(
        "hkidash.services.record_query.hydrate_records",
        AsyncMock(side_effect=HydrationError(OperationalError("SELECT", {}, Exception("timeout")))),
    )

    response = await client.get(f"{API}/records?search=A", headers=auth_headers)

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "HYDRATION_FAILED"
