from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from conftest import image_upload
from qrar.models import PopUpImage


def _iso(delta: timedelta) -> str:
    return (datetime.now(timezone.utc) + delta).isoformat()


# =============================================================================
# OFFERS
# =============================================================================

async def _create_offer(client, restaurant, **fields):
    payload = {
        "title": "Happy Hour",
        "target_type": "all",
        "discount_percentage": 10,
        "activation_time": _iso(timedelta(hours=-1)),
        **fields,
    }
    return await client.post("/offers", json=payload, headers=restaurant.headers)


async def test_active_offers_are_grouped_by_target(client, make_restaurant, add_product):
    restaurant = await make_restaurant()
    product = await add_product(restaurant)

    everything = await _create_offer(client, restaurant, target_id=123)
    assert everything.status_code == 201
    assert everything.json()["target_id"] is None
    await _create_offer(client, restaurant, title="Thali Tuesday", target_type="product", target_id=product["id"])
    await _create_offer(client, restaurant, title="Curry week", target_type="category", target_id=product["category_id"])
    await _create_offer(client, restaurant, title="Not yet", activation_time=_iso(timedelta(days=1)))
    await _create_offer(
        client, restaurant, title="Over",
        activation_time=_iso(timedelta(days=-3)), expiration_time=_iso(timedelta(days=-1)),
    )
    paused = await _create_offer(client, restaurant, title="Paused", is_active=False)
    assert paused.json()["is_active"] is False

    response = await client.get(f"/offers/restaurant/{restaurant.id}/active")

    assert response.status_code == 200
    active = response.json()
    assert [o["title"] for o in active["all"]] == ["Happy Hour"]
    assert [o["title"] for o in active["products"][str(product["id"])]] == ["Thali Tuesday"]
    assert [o["title"] for o in active["categories"][str(product["category_id"])]] == ["Curry week"]
    assert len((await client.get("/offers", headers=restaurant.headers)).json()) == 6


async def test_offer_validation(client, make_restaurant, add_product):
    restaurant = await make_restaurant()
    other = await make_restaurant()
    foreign = await add_product(other)

    missing_target = await _create_offer(client, restaurant, target_type="product")
    assert missing_target.status_code == 400

    foreign_target = await _create_offer(client, restaurant, target_type="product", target_id=foreign["id"])
    assert foreign_target.status_code == 400

    backwards = await _create_offer(client, restaurant, expiration_time=_iso(timedelta(hours=-2)))
    assert backwards.status_code == 400

    too_generous = await _create_offer(client, restaurant, discount_percentage=150)
    assert too_generous.status_code == 400


async def test_offer_update_toggle_delete(client, make_restaurant):
    restaurant = await make_restaurant()
    offer_id = (await _create_offer(client, restaurant)).json()["id"]

    updated = await client.put(f"/offers/{offer_id}", json={"discount_percentage": 25}, headers=restaurant.headers)
    assert updated.status_code == 200
    assert updated.json()["discount_percentage"] == 25
    assert updated.json()["title"] == "Happy Hour"

    invalid = await client.put(f"/offers/{offer_id}", json={"target_type": "category"}, headers=restaurant.headers)
    assert invalid.status_code == 400

    toggled = await client.put(f"/offers/{offer_id}/toggle", headers=restaurant.headers)
    assert toggled.json()["is_active"] is False
    active = (await client.get(f"/offers/restaurant/{restaurant.id}/active")).json()
    assert active == {"all": [], "categories": {}, "products": {}}

    assert (await client.delete(f"/offers/{offer_id}", headers=restaurant.headers)).status_code == 200
    assert (await client.get(f"/offers/{offer_id}", headers=restaurant.headers)).status_code == 404


# =============================================================================
# COUPONS
# =============================================================================

async def _create_coupon(client, restaurant, **fields):
    payload = {
        "name": "Welcome",
        "code": "WELCOME50",
        "type": "limited-users",
        "limit": 1,
        "discount_type": "total-order",
        "discount_value": 50,
        **fields,
    }
    return await client.post("/coupons", json=payload, headers=restaurant.headers)


async def test_coupon_usage_limit(client, make_restaurant):
    restaurant = await make_restaurant()
    created = await _create_coupon(client, restaurant)
    assert created.status_code == 201
    assert created.json()["redeemed_users"] == 0

    url = f"/coupons/restaurant/{restaurant.id}/apply"
    applied = await client.post(url, json={"code": "WELCOME50", "order_value": 300})
    assert applied.status_code == 200
    assert applied.json()["discount_amount"] == 50
    assert applied.json()["final_price"] == 250

    again = await client.post(url, json={"code": "WELCOME50", "order_value": 300})
    assert again.status_code == 400
    assert again.json()["detail"] == "Coupon usage limit reached"

    coupon = (await client.get(f"/coupons/{created.json()['id']}", headers=restaurant.headers)).json()
    assert coupon["redeemed_users"] == 1


async def test_expired_coupon(client, make_restaurant):
    restaurant = await make_restaurant()
    await _create_coupon(
        client, restaurant, code="OLD", type="time-limited", limit=None, expiry_date=_iso(timedelta(days=-1))
    )

    response = await client.post(f"/coupons/restaurant/{restaurant.id}/apply", json={"code": "OLD", "order_value": 100})

    assert response.status_code == 400
    assert response.json()["detail"] == "Coupon has expired"


async def test_product_coupon_needs_a_product_value(client, make_restaurant):
    restaurant = await make_restaurant()
    await _create_coupon(client, restaurant, code="DOSA", type="time-limited", limit=None,
                         expiry_date=_iso(timedelta(days=1)), discount_type="product", discount_value=30)
    url = f"/coupons/restaurant/{restaurant.id}/apply"

    without = await client.post(url, json={"code": "DOSA", "order_value": 200})
    assert without.json()["discount_amount"] == 0
    assert without.json()["final_price"] == 200

    with_product = await client.post(url, json={"code": "DOSA", "order_value": 20, "product_value": 20})
    assert with_product.json()["discount_amount"] == 30
    assert with_product.json()["final_price"] == 0


async def test_coupon_codes_are_unique_per_restaurant(client, make_restaurant):
    restaurant = await make_restaurant()
    other = await make_restaurant()
    await _create_coupon(client, restaurant)

    assert (await _create_coupon(client, restaurant, limit=5)).status_code == 400
    assert (await _create_coupon(client, other)).status_code == 201


async def test_coupon_type_fields_are_required(client, make_restaurant):
    restaurant = await make_restaurant()

    assert (await _create_coupon(client, restaurant, limit=None)).status_code == 400
    assert (await _create_coupon(client, restaurant, type="time-limited")).status_code == 400


async def test_inactive_or_unknown_coupon(client, make_restaurant):
    restaurant = await make_restaurant()
    coupon_id = (await _create_coupon(client, restaurant)).json()["id"]
    url = f"/coupons/restaurant/{restaurant.id}/apply"

    toggled = await client.put(f"/coupons/{coupon_id}/toggle", headers=restaurant.headers)
    assert toggled.json()["is_active"] is False

    assert (await client.post(url, json={"code": "WELCOME50", "order_value": 100})).status_code == 400
    assert (await client.post(url, json={"code": "NOPE", "order_value": 100})).status_code == 400

    assert (await client.delete(f"/coupons/{coupon_id}", headers=restaurant.headers)).status_code == 200
    assert (await client.get("/coupons", headers=restaurant.headers)).json() == []


# =============================================================================
# COMBO DEALS
# =============================================================================

async def test_combo_deal_lifecycle(client, make_restaurant, add_product):
    restaurant = await make_restaurant()
    burger = await add_product(restaurant, name="Burger")
    fries = await add_product(restaurant, name="Fries")

    created = await client.post(
        "/combo-deals",
        data={
            "title": "Burger + Fries",
            "deal_type": "product-product",
            "offer_type": "fixed-price",
            "offer_value": "149",
            "product1_id": str(burger["id"]),
            "product2_id": str(fries["id"]),
            "category_id": str(burger["category_id"]),
        },
        files=image_upload("combo.png", field="image"),
        headers=restaurant.headers,
    )
    assert created.status_code == 201, created.text
    deal = created.json()
    assert deal["category_id"] is None
    assert deal["image"].endswith(".png")

    switched = await client.put(
        f"/combo-deals/{deal['id']}",
        data={
            "deal_type": "product-category",
            "offer_type": "free",
            "product_id": str(burger["id"]),
            "category_id": str(fries["category_id"]),
        },
        headers=restaurant.headers,
    )
    assert switched.status_code == 200, switched.text
    body = switched.json()
    assert body["deal_type"] == "product-category"
    assert body["product1_id"] is None and body["product2_id"] is None
    assert body["offer_value"] is None
    assert body["title"] == "Burger + Fries"

    toggled = await client.put(f"/combo-deals/{deal['id']}/toggle", headers=restaurant.headers)
    assert toggled.json()["is_active"] is False

    assert (await client.delete(f"/combo-deals/{deal['id']}", headers=restaurant.headers)).status_code == 200
    assert (await client.get("/combo-deals", headers=restaurant.headers)).json() == []


async def test_combo_deal_references(client, make_restaurant, add_product):
    restaurant = await make_restaurant()
    other = await make_restaurant()
    mine = await add_product(restaurant)
    foreign = await add_product(other)
    base = {"title": "Combo", "deal_type": "product-product", "offer_type": "discount", "offer_value": "10"}

    missing = await client.post(
        "/combo-deals", data={**base, "product1_id": str(mine["id"])}, headers=restaurant.headers
    )
    assert missing.status_code == 400

    stolen = await client.post(
        "/combo-deals",
        data={**base, "product1_id": str(mine["id"]), "product2_id": str(foreign["id"])},
        headers=restaurant.headers,
    )
    assert stolen.status_code == 400

    no_value = await client.post(
        "/combo-deals",
        data={
            "title": "Combo",
            "deal_type": "product-product",
            "offer_type": "discount",
            "product1_id": str(mine["id"]),
            "product2_id": str(mine["id"]),
        },
        headers=restaurant.headers,
    )
    assert no_value.status_code == 400


# =============================================================================
# POP-UPS & SLIDER IMAGES
# =============================================================================

async def _create_popup(client, restaurant, name: str) -> dict:
    response = await client.post("/popups", data={"name": name}, files=image_upload(f"{name}.png"), headers=restaurant.headers)
    assert response.status_code == 201, response.text
    return response.json()


async def test_only_one_popup_is_active(client, make_restaurant):
    restaurant = await make_restaurant()
    other = await make_restaurant()
    first = await _create_popup(client, restaurant, "diwali")
    second = await _create_popup(client, restaurant, "holi")
    elsewhere = await _create_popup(client, other, "eid")
    assert first["is_active"] is False

    await client.put(f"/popups/{elsewhere['id']}/toggle", headers=other.headers)
    await client.put(f"/popups/{first['id']}/toggle", headers=restaurant.headers)
    await client.put(f"/popups/{second['id']}/toggle", headers=restaurant.headers)

    popups = (await client.get("/popups", headers=restaurant.headers)).json()
    assert {p["name"]: p["is_active"] for p in popups} == {"diwali": False, "holi": True}
    assert (await client.get("/popups/active", headers=restaurant.headers)).json()["name"] == "holi"
    assert (await client.get(f"/popups/restaurant/{restaurant.id}/active")).json()["name"] == "holi"
    assert (await client.get(f"/popups/restaurant/{other.id}/active")).json()["name"] == "eid"

    await client.put(f"/popups/{second['id']}/toggle", headers=restaurant.headers)
    assert (await client.get(f"/popups/restaurant/{restaurant.id}/active")).json() is None


async def test_database_refuses_a_second_active_popup(client, db, make_restaurant):
    restaurant = await make_restaurant()
    other = await make_restaurant()
    db.add_all([
        PopUpImage(restaurant_id=restaurant.id, name="diwali", img="https://img/1.png", is_active=True),
        PopUpImage(restaurant_id=restaurant.id, name="holi", img="https://img/2.png", is_active=False),
        PopUpImage(restaurant_id=restaurant.id, name="onam", img="https://img/3.png", is_active=False),
        PopUpImage(restaurant_id=other.id, name="eid", img="https://img/4.png", is_active=True),
    ])
    await db.commit()

    db.add(PopUpImage(restaurant_id=restaurant.id, name="pongal", img="https://img/5.png", is_active=True))
    with pytest.raises(IntegrityError):
        await db.commit()
    await db.rollback()


async def test_popup_delete_is_scoped(client, make_restaurant):
    restaurant = await make_restaurant()
    other = await make_restaurant()
    popup = await _create_popup(client, restaurant, "sale")

    assert (await client.delete(f"/popups/{popup['id']}", headers=other.headers)).status_code == 404
    assert (await client.delete(f"/popups/{popup['id']}", headers=restaurant.headers)).status_code == 200


async def test_slider_images(client, make_restaurant):
    restaurant = await make_restaurant()
    other = await make_restaurant()
    offer_id = (await _create_offer(client, restaurant)).json()["id"]
    foreign_offer_id = (await _create_offer(client, other)).json()["id"]

    created = await client.post(
        "/slider-images", data={"offer_id": str(offer_id)}, files=image_upload("slide.png"), headers=restaurant.headers
    )
    assert created.status_code == 201
    slide = created.json()
    assert slide["offer_id"] == offer_id

    rejected = await client.post(
        "/slider-images", data={"offer_id": str(foreign_offer_id)}, files=image_upload(), headers=restaurant.headers
    )
    assert rejected.status_code == 400

    updated = await client.put(f"/slider-images/{slide['id']}", files=image_upload("slide-2.png"), headers=restaurant.headers)
    assert "slide-2" in updated.json()["img"]

    public = (await client.get(f"/slider-images/restaurant/{restaurant.id}")).json()
    assert [s["id"] for s in public] == [slide["id"]]

    assert (await client.delete(f"/slider-images/{slide['id']}", headers=restaurant.headers)).status_code == 200
    assert (await client.get("/slider-images", headers=restaurant.headers)).json() == []
