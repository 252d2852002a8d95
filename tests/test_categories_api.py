from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest
from httpx import AsyncClient
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from tasktracker.models import DEFAULT_CATEGORY_COLOR, Task

pytestmark = pytest.mark.asyncio

MakeUser = Callable[..., Any]


async def _create_category(client: AsyncClient, owner: Any, **payload) -> dict:
    response = await client.post("/api/categories", json=payload, headers=owner.headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def test_create_category_and_reject_duplicate_name(client: AsyncClient, make_user: MakeUser) -> None:
    owner = make_user()

    created = await client.post(
        "/api/categories",
        json={"name": "Work", "color": "#FF5733"},
        headers=owner.headers,
    )
    assert created.status_code == 201
    assert created.json()["data"]["name"] == "Work"
    assert created.json()["data"]["owner_id"] == str(owner.id)

    duplicate = await client.post("/api/categories", json={"name": "Work"}, headers=owner.headers)
    assert duplicate.status_code == 400
    assert duplicate.json() == {"success": False, "error": "Category name already exists"}


async def test_same_name_is_allowed_for_different_owners(client: AsyncClient, make_user: MakeUser) -> None:
    first = make_user()
    second = make_user()

    await _create_category(client, first, name="Home")
    other = await _create_category(client, second, name="Home")

    assert other["owner_id"] == str(second.id)


async def test_color_defaults_and_is_validated(client: AsyncClient, make_user: MakeUser) -> None:
    owner = make_user()

    plain = await _create_category(client, owner, name="Plain")
    assert plain["color"] == DEFAULT_CATEGORY_COLOR

    invalid = await client.post(
        "/api/categories",
        json={"name": "Loud", "color": "red"},
        headers=owner.headers,
    )
    assert invalid.status_code == 400
    assert invalid.json()["details"][0]["field"] == "color"


async def test_categories_are_never_shared(client: AsyncClient, make_user: MakeUser) -> None:
    owner = make_user()
    stranger = make_user()
    category = await _create_category(client, owner, name="Secret")
    url = f"/api/categories/{category['id']}"

    assert (await client.get(url, headers=stranger.headers)).status_code == 404
    assert (await client.put(url, json={"name": "Mine"}, headers=stranger.headers)).status_code == 404
    assert (await client.delete(url, headers=stranger.headers)).status_code == 404
    assert (await client.get(f"{url}/tasks", headers=stranger.headers)).status_code == 404

    listing = await client.get("/api/categories", headers=stranger.headers)
    assert listing.json() == {"success": True, "data": []}


async def test_list_categories_returns_newest_first(client: AsyncClient, make_user: MakeUser) -> None:
    owner = make_user()
    for name in ("One", "Two", "Three"):
        await _create_category(client, owner, name=name)

    response = await client.get("/api/categories", headers=owner.headers)

    assert [item["name"] for item in response.json()["data"]] == ["Three", "Two", "One"]


async def test_update_category(client: AsyncClient, make_user: MakeUser) -> None:
    owner = make_user()
    category = await _create_category(client, owner, name="Errands")
    await _create_category(client, owner, name="Chores")

    renamed = await client.put(
        f"/api/categories/{category['id']}",
        json={"name": "Personal", "description": "Things at home"},
        headers=owner.headers,
    )
    assert renamed.status_code == 200
    assert renamed.json()["data"]["name"] == "Personal"
    assert renamed.json()["data"]["description"] == "Things at home"

    clash = await client.put(
        f"/api/categories/{category['id']}",
        json={"name": "Chores"},
        headers=owner.headers,
    )
    assert clash.status_code == 400
    assert clash.json()["error"] == "Category name already exists"

    same_name = await client.put(
        f"/api/categories/{category['id']}",
        json={"name": "Personal", "color": "#123ABC"},
        headers=owner.headers,
    )
    assert same_name.status_code == 200
    assert same_name.json()["data"]["color"] == "#123ABC"

    empty = await client.put(f"/api/categories/{category['id']}", json={}, headers=owner.headers)
    assert empty.status_code == 400


@pytest.mark.parametrize("field", ["name", "color"])
async def test_update_rejects_null_for_required_fields(
    client: AsyncClient, make_user: MakeUser, field: str
) -> None:
    owner = make_user()
    category = await _create_category(client, owner, name="Work", color="#123ABC")

    response = await client.put(
        f"/api/categories/{category['id']}",
        json={field: None},
        headers=owner.headers,
    )

    assert response.status_code == 400
    assert response.json()["success"] is False
    unchanged = await client.get(f"/api/categories/{category['id']}", headers=owner.headers)
    assert unchanged.json()["data"]["name"] == "Work"
    assert unchanged.json()["data"]["color"] == "#123ABC"


async def test_update_clears_description_with_null(client: AsyncClient, make_user: MakeUser) -> None:
    owner = make_user()
    category = await _create_category(client, owner, name="Work", description="Office things")

    response = await client.put(
        f"/api/categories/{category['id']}",
        json={"description": None},
        headers=owner.headers,
    )

    assert response.status_code == 200
    assert response.json()["data"]["description"] is None


async def test_delete_category_detaches_its_tasks(
    client: AsyncClient,
    make_user: MakeUser,
    session: AsyncSession,
) -> None:
    owner = make_user()
    category = await _create_category(client, owner, name="Doomed")
    task = await client.post(
        "/api/tasks",
        json={"title": "Survivor", "category_id": category["id"]},
        headers=owner.headers,
    )
    task_id = task.json()["data"]["id"]

    deleted = await client.delete(f"/api/categories/{category['id']}", headers=owner.headers)
    assert deleted.status_code == 200
    assert deleted.json() == {"success": True, "message": "Category deleted successfully"}

    assert (await client.get(f"/api/categories/{category['id']}", headers=owner.headers)).status_code == 404
    survivor = await client.get(f"/api/tasks/{task_id}", headers=owner.headers)
    assert survivor.status_code == 200
    assert survivor.json()["data"]["category_id"] is None
    assert survivor.json()["data"]["category"] is None

    result = await session.exec(select(Task).where(Task.id == task_id))
    stored = result.one()
    await session.refresh(stored)
    assert stored.category_id is None


async def test_category_tasks_lists_visible_tasks_only(client: AsyncClient, make_user: MakeUser) -> None:
    owner = make_user()
    category = await _create_category(client, owner, name="Sprint", color="#00AA00")
    other = await _create_category(client, owner, name="Backlog")

    filed = await client.post(
        "/api/tasks",
        json={"title": "In sprint", "category_id": category["id"]},
        headers=owner.headers,
    )
    await client.post(
        "/api/tasks",
        json={"title": "In backlog", "category_id": other["id"]},
        headers=owner.headers,
    )
    await client.post("/api/tasks", json={"title": "Loose"}, headers=owner.headers)

    response = await client.get(f"/api/categories/{category['id']}/tasks", headers=owner.headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert [item["id"] for item in data] == [filed.json()["data"]["id"]]
    assert data[0]["category"] == {"name": "Sprint", "color": "#00AA00"}

    missing = await client.get("/api/categories/424242/tasks", headers=owner.headers)
    assert missing.status_code == 404
    assert missing.json()["error"] == "Category not found"
