import pytest


def add_section(client, tenant_id, name, position=0, menu="dinner"):
    response = client.post(
        "/dashboard/sections",
        json={"tenantId": tenant_id, "menu": menu, "name": name, "position": position},
    )
    assert response.status_code == 201
    return response.json()["data"]["id"]


def add_item(client, tenant_id, name, section_id=None, **fields):
    payload = {"tenantId": tenant_id, "name": name, "priceCents": 1000, "sectionId": section_id, **fields}
    response = client.post("/dashboard/items", json=payload)
    assert response.status_code == 201
    return response.json()["data"]["id"]


@pytest.fixture
def seeded(client, tenant):
    mains = add_section(client, tenant.id, "Mains", position=2)
    starters = add_section(client, tenant.id, "Starters", position=1)
    add_section(client, tenant.id, "Empty", position=3)
    drinks = add_section(client, tenant.id, "Drinks", menu="bar")

    add_item(client, tenant.id, "Lasagne", mains)
    add_item(client, tenant.id, "Bruschetta", starters)
    add_item(client, tenant.id, "Sold Out Soup", starters, isAvailable=False)
    add_item(client, tenant.id, "Negroni", drinks)
    add_item(client, tenant.id, "Bread Basket")
    return {"mains": mains, "starters": starters, "drinks": drinks}


def test_menu_grouped_by_section(client, tenant, seeded):
    response = client.get("/menu", params={"tenantId": tenant.id})

    assert response.status_code == 200
    sections = response.json()["data"]["sections"]
    assert [(s["menu"], s["name"]) for s in sections] == [
        ("bar", "Drinks"),
        ("dinner", "Starters"),
        ("dinner", "Mains"),
        (None, "Other"),
    ]
    assert [i["name"] for i in sections[1]["items"]] == ["Bruschetta"]
    assert sections[-1]["id"] is None
    assert [i["name"] for i in sections[-1]["items"]] == ["Bread Basket"]


def test_menu_filter(client, tenant, seeded):
    sections = client.get("/menu", params={"tenantId": tenant.id, "menu": "bar"}).json()["data"]["sections"]
    assert [s["name"] for s in sections] == ["Drinks"]


def test_include_unavailable(client, tenant, seeded):
    params = {"tenantId": tenant.id, "includeUnavailable": "true"}
    sections = client.get("/menu", params=params).json()["data"]["sections"]
    starters = next(s for s in sections if s["name"] == "Starters")
    assert [i["name"] for i in starters["items"]] == ["Bruschetta", "Sold Out Soup"]
    assert starters["items"][1]["isAvailable"] is False


def test_menu_items_use_camel_case(client, tenant, seeded):
    item = client.get("/menu", params={"tenantId": tenant.id}).json()["data"]["sections"][0]["items"][0]
    assert set(item) == {"id", "sectionId", "name", "description", "priceCents", "currency", "tags", "isAvailable"}
    assert item["currency"] == "SEK"


def test_menu_requires_valid_tenant(client):
    assert client.get("/menu", params={"tenantId": "nope"}).json()["code"] == "INVALID_TENANT_ID"
    assert client.get("/menu").status_code == 400


def test_menu_of_inactive_tenant(client, store):
    tenant = store.add_tenant(is_active=False)
    response = client.get("/menu", params={"tenantId": tenant.id})
    assert response.status_code == 403
    assert response.json()["code"] == "TENANT_INACTIVE"


def test_empty_menu(client, tenant):
    response = client.get("/menu", params={"tenantId": tenant.id})
    assert response.json() == {"ok": True, "data": {"sections": []}}
