"""
Tests for master data (reference table) endpoints.
"""

import pytest
from httpx import AsyncClient

from hkidash.core.config import settings

API = settings.api_v1_prefix


class TestTableSafelist:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("table", ["users", "filing_records", "statuses", "ip_types", "pg_user"])
    async def test_unknown_table_rejected_on_write(
        self, client: AsyncClient, admin_headers, table
    ):
        response = await client.post(f"{API}/master/{table}", json={"name": "x"}, headers=admin_headers)

        assert response.status_code == 400
        allowed = response.json()["error"]["details"]["errors"][0]["allowed"]
        assert allowed == ["ip-types", "ip-classes", "agencies"]

    @pytest.mark.asyncio
    async def test_unknown_table_rejected_on_read(self, client: AsyncClient, auth_headers):
        response = await client.get(f"{API}/master/user_profiles", headers=auth_headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_statuses_cannot_be_deleted(self, client: AsyncClient, admin_headers, reference_data):
        status_id = reference_data.statuses["Ditolak"].id
        response = await client.delete(f"{API}/master/statuses/{status_id}", headers=admin_headers)
        assert response.status_code == 400


class TestListing:
    @pytest.mark.asyncio
    async def test_list_statuses(self, client: AsyncClient, auth_headers, reference_data):
        response = await client.get(f"{API}/master/statuses", headers=auth_headers)

        assert response.status_code == 200
        assert [s["name"] for s in response.json()] == ["Diterima", "Didaftar", "Dalam Proses", "Ditolak"]

    @pytest.mark.asyncio
    async def test_list_classes(self, client: AsyncClient, auth_headers, reference_data):
        response = await client.get(f"{API}/master/ip-classes", headers=auth_headers)

        assert response.json() == [
            {"id": 25, "name": "Pakaian, alas kaki", "kind": "Goods", "label": "25 - Pakaian, alas kaki (Goods)"},
            {
                "id": 43,
                "name": "Jasa penyediaan makanan",
                "kind": "Services",
                "label": "43 - Jasa penyediaan makanan (Services)",
            },
        ]

    @pytest.mark.asyncio
    async def test_list_agencies_sorted_by_name(self, client: AsyncClient, auth_headers, reference_data):
        response = await client.get(f"{API}/master/agencies", headers=auth_headers)
        assert [a["name"] for a in response.json()] == ["Dinas Koperasi", "Dinas Perdagangan"]


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_type(self, client: AsyncClient, admin_headers, reference_data):
        response = await client.post(
            f"{API}/master/ip-types", json={"name": "  Paten  "}, headers=admin_headers
        )

        assert response.status_code == 201
        assert response.json()["name"] == "Paten"

    @pytest.mark.asyncio
    async def test_create_class_with_legacy_fields(self, client: AsyncClient, admin_headers, reference_data):
        response = await client.post(
            f"{API}/master/ip-classes",
            json={"id_kelas": 30, "name": "Kopi, teh", "kind": "Barang"},
            headers=admin_headers,
        )

        assert response.status_code == 201
        assert response.json()["id"] == 30
        assert response.json()["kind"] == "Goods"

    @pytest.mark.asyncio
    async def test_duplicate_class_id(self, client: AsyncClient, admin_headers, reference_data):
        response = await client.post(
            f"{API}/master/ip-classes", json={"id": 25, "name": "Lagi"}, headers=admin_headers
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONFLICT"

    @pytest.mark.asyncio
    async def test_duplicate_name(self, client: AsyncClient, admin_headers, reference_data):
        response = await client.post(
            f"{API}/master/agencies", json={"name": "Dinas Koperasi"}, headers=admin_headers
        )
        assert response.status_code == 409

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [{"id": 0, "name": "Nol"}, {"id": 46, "name": "Lebih"}, {"id": 10}, {"id": 10, "name": "X", "kind": "Lain"}],
    )
    async def test_invalid_class(self, client: AsyncClient, admin_headers, reference_data, payload):
        response = await client.post(f"{API}/master/ip-classes", json=payload, headers=admin_headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_requires_admin(self, client: AsyncClient, auth_headers, reference_data):
        response = await client.post(f"{API}/master/ip-types", json={"name": "Paten"}, headers=auth_headers)
        assert response.status_code == 403


class TestUpdate:
    @pytest.mark.asyncio
    async def test_rename(self, client: AsyncClient, admin_headers, reference_data):
        type_id = reference_data.types["Merek"].id

        response = await client.patch(
            f"{API}/master/ip-types/{type_id}", json={"name": "Merek Dagang"}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json() == {"id": type_id, "name": "Merek Dagang"}

    @pytest.mark.asyncio
    async def test_id_in_body_is_ignored(self, client: AsyncClient, admin_headers, reference_data):
        response = await client.patch(
            f"{API}/master/ip-classes/25",
            json={"id_kelas": 99, "id": 99, "kind": "Jasa"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["id"] == 25
        assert response.json()["kind"] == "Services"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{}, {"id": 5}, {"name": None}])
    async def test_empty_update(self, client: AsyncClient, admin_headers, reference_data, payload):
        response = await client.patch(f"{API}/master/ip-classes/25", json=payload, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Tidak ada data untuk diperbarui."

    @pytest.mark.asyncio
    async def test_missing_body(self, client: AsyncClient, admin_headers, reference_data):
        response = await client.patch(f"{API}/master/ip-classes/25", headers=admin_headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_update_missing_row(self, client: AsyncClient, admin_headers, reference_data):
        response = await client.patch(
            f"{API}/master/agencies/999", json={"name": "Baru"}, headers=admin_headers
        )
        assert response.status_code == 404


class TestDelete:
    @pytest.mark.asyncio
    async def test_row_in_use_is_protected(self, client: AsyncClient, admin_headers, reference_data, make_record):
        await make_record("Pakai Merek", ip_type="Merek")
        type_id = reference_data.types["Merek"].id

        response = await client.delete(f"{API}/master/ip-types/{type_id}", headers=admin_headers)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "IN_USE"
        still_there = await client.get(f"{API}/master/ip-types", headers=admin_headers)
        assert "Merek" in [t["name"] for t in still_there.json()]

    @pytest.mark.asyncio
    async def test_class_in_use_is_protected(self, client: AsyncClient, admin_headers, make_record):
        await make_record("Kaos", class_id=25)

        response = await client.delete(f"{API}/master/ip-classes/25", headers=admin_headers)

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_unused_row_deleted(self, client: AsyncClient, admin_headers, reference_data):
        type_id = reference_data.types["Hak Cipta"].id

        response = await client.delete(f"{API}/master/ip-types/{type_id}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {"id": type_id, "message": "Data berhasil dihapus."}

    @pytest.mark.asyncio
    async def test_delete_missing(self, client: AsyncClient, admin_headers, reference_data):
        response = await client.delete(f"{API}/master/agencies/999", headers=admin_headers)
        assert response.status_code == 404
