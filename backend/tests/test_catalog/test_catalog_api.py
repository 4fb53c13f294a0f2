"""Integration tests for the reference data admin API."""

import uuid

from fastapi import status

ADMIN = "/api/v1/admin"


class TestColorEndpoints:
    async def test_create_and_get(self, client, store) -> None:
        response = await client.post(
            f"{ADMIN}/colors",
            json={"color_name": " Sky Blue ", "hex_code": "#87ceeb", "supplier": "Sunlu"},
        )

        assert response.status_code == status.HTTP_201_CREATED
        created = response.json()
        assert created["color_name"] == "Sky Blue"
        assert created["hex_code"] == "#87CEEB"
        assert created["material_type"] == "PLA"

        fetched = await client.get(f"{ADMIN}/colors/{created['id']}")
        assert fetched.json()["id"] == created["id"]

    async def test_bad_hex_code(self, client, store) -> None:
        response = await client.post(
            f"{ADMIN}/colors", json={"color_name": "Mud", "hex_code": "brown"}
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["error"] == "validation_error"

    async def test_duplicate_name(self, client, seeded) -> None:
        response = await client.post(
            f"{ADMIN}/colors", json={"color_name": "Red", "hex_code": "#EE1111"}
        )
        assert response.status_code == status.HTTP_409_CONFLICT

    async def test_list_filters(self, client, seeded) -> None:
        all_colors = await client.get(f"{ADMIN}/colors")
        assert [c["color_name"] for c in all_colors.json()] == ["Black", "Red", "White"]

        search = await client.get(f"{ADMIN}/colors", params={"search": "bla"})
        assert [c["color_name"] for c in search.json()] == ["Black"]

        supplier = await client.get(f"{ADMIN}/colors", params={"supplier": "Bambu"})
        assert [c["color_name"] for c in supplier.json()] == ["Red"]

    async def test_update_and_soft_delete(self, client, seeded) -> None:
        updated = await client.patch(
            f"{ADMIN}/colors/{seeded.white.id}", json={"pantone_code": "11-0601"}
        )
        assert updated.json()["pantone_code"] == "11-0601"

        deactivated = await client.post(f"{ADMIN}/colors/{seeded.white.id}/deactivate")
        assert deactivated.json()["is_active"] is False

        listed = await client.get(f"{ADMIN}/colors")
        assert "White" not in [c["color_name"] for c in listed.json()]
        listed = await client.get(f"{ADMIN}/colors", params={"include_inactive": True})
        assert "White" in [c["color_name"] for c in listed.json()]

        restored = await client.post(f"{ADMIN}/colors/{seeded.white.id}/activate")
        assert restored.json()["is_active"] is True

    async def test_unknown_color(self, client, store) -> None:
        response = await client.get(f"{ADMIN}/colors/{uuid.uuid4()}")
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestPartEndpoints:
    async def test_create_and_lookup_by_code(self, client, store) -> None:
        response = await client.post(
            f"{ADMIN}/parts", json={"part_code": "GEAR-12", "part_name": "Gear"}
        )
        assert response.status_code == status.HTTP_201_CREATED

        by_code = await client.get(f"{ADMIN}/parts/by-code/GEAR-12")
        assert by_code.status_code == status.HTTP_200_OK
        assert by_code.json()["id"] == response.json()["id"]

    async def test_search_and_deactivate(self, client, seeded) -> None:
        search = await client.get(f"{ADMIN}/parts", params={"search": "lid"})
        assert [p["part_code"] for p in search.json()] == ["BOX-LID"]

        await client.post(f"{ADMIN}/parts/{seeded.lid.id}/deactivate")
        listed = await client.get(f"{ADMIN}/parts")
        assert [p["part_code"] for p in listed.json()] == ["BOX-BASE", "HINGE-01"]

    async def test_unknown_code(self, client, store) -> None:
        response = await client.get(f"{ADMIN}/parts/by-code/MISSING")
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestTemplateEndpoints:
    async def test_create_template(self, client, seeded) -> None:
        response = await client.post(
            f"{ADMIN}/templates",
            json={
                "template_name": "Hinge Pack",
                "num_colors": 1,
                "parts": [{"part_id": str(seeded.hinge.id), "quantity": 4}],
            },
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["part_count"] == 1
        assert data["parts"][0]["quantity"] == 4
        assert data["parts"][0]["part"]["part_code"] == "HINGE-01"

    async def test_num_colors_is_bounded(self, client, seeded) -> None:
        response = await client.post(
            f"{ADMIN}/templates", json={"template_name": "Rainbow", "num_colors": 5}
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    async def test_manage_template_parts(self, client, seeded) -> None:
        template_url = f"{ADMIN}/templates/{seeded.box_template.id}"

        added = await client.post(
            f"{template_url}/parts", json={"part_id": str(seeded.hinge.id), "quantity": 2}
        )
        assert added.status_code == status.HTTP_200_OK
        assert added.json()["part_count"] == 3

        changed = await client.put(
            f"{template_url}/parts/{seeded.hinge.id}", json={"quantity": 6}
        )
        quantities = {p["part_id"]: p["quantity"] for p in changed.json()["parts"]}
        assert quantities[str(seeded.hinge.id)] == 6

        removed = await client.delete(f"{template_url}/parts/{seeded.hinge.id}")
        assert removed.status_code == status.HTTP_200_OK
        assert str(seeded.hinge.id) not in {p["part_id"] for p in removed.json()["parts"]}

    async def test_inactive_part_cannot_be_added(self, client, catalog, seeded) -> None:
        await catalog.deactivate_part(seeded.hinge.id)

        response = await client.post(
            f"{ADMIN}/templates/{seeded.box_template.id}/parts",
            json={"part_id": str(seeded.hinge.id)},
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["error"] == "inactive_reference"

    async def test_deactivate_template(self, client, seeded) -> None:
        response = await client.post(
            f"{ADMIN}/templates/{seeded.box_template.id}/deactivate"
        )
        assert response.json()["is_active"] is False
        assert (await client.get(f"{ADMIN}/templates")).json() == []
