from datetime import date, timedelta

import pytest

from qrar.services.analytics import age_group, age_on


def _years_ago(years: int) -> str:
    today = date.today()
    return today.replace(year=today.year - years, day=min(today.day, 28)).isoformat()


async def test_register_then_log_in_again(client, make_restaurant):
    restaurant = await make_restaurant()
    payload = {"name": "Asha", "phone": "9000000001", "dob": "1998-02-11"}

    first = await client.post(f"/users/{restaurant.id}", json=payload)
    second = await client.post(f"/users/{restaurant.id}", json={**payload, "name": "Someone Else"})

    assert first.status_code == 201
    assert first.json()["message"] == "User registered successfully"
    assert second.status_code == 200
    assert second.json()["customer_identifier"] == first.json()["customer_identifier"]
    assert second.json()["user"]["name"] == "Asha"

    customers = (await client.get("/users", headers=restaurant.headers)).json()
    assert len(customers) == 1
    assert customers[0]["visit_count"] == 2
    assert customers[0]["last_visit"] is not None


async def test_same_customer_at_two_restaurants(client, make_restaurant):
    first = await make_restaurant()
    second = await make_restaurant()
    payload = {"name": "Ravi", "phone": "+919000000002", "dob": "1980-10-01"}

    await client.post(f"/users/{first.id}", json=payload)
    response = await client.post(f"/users/{second.id}", json=payload)

    assert response.status_code == 200
    assert (await client.get("/users/total", headers=first.headers)).json() == {"total_users": 1}
    assert (await client.get("/users/total", headers=second.headers)).json() == {"total_users": 1}


@pytest.mark.parametrize(
    "payload",
    [
        {"name": "Bad Phone", "phone": "12345", "dob": "1990-01-01"},
        {"name": "Letters", "phone": "90000abcde", "dob": "1990-01-01"},
        {"name": "Future", "phone": "9000000003", "dob": (date.today() + timedelta(days=1)).isoformat()},
        {"name": "", "phone": "9000000004", "dob": "1990-01-01"},
    ],
)
async def test_invalid_registration(client, make_restaurant, payload):
    restaurant = await make_restaurant()

    response = await client.post(f"/users/{restaurant.id}", json=payload)

    assert response.status_code == 400


async def test_unknown_restaurant(client):
    response = await client.post("/users/999", json={"name": "A", "phone": "9000000005", "dob": "1990-01-01"})
    assert response.status_code == 404


async def test_customer_routes_are_scoped(client, make_restaurant, add_customer):
    restaurant = await make_restaurant()
    other = await make_restaurant()
    await add_customer(restaurant)

    assert (await client.get("/users", headers=other.headers)).json() == []
    assert (await client.get("/users/total", headers=other.headers)).json() == {"total_users": 0}
    assert (await client.get("/users")).status_code == 401


async def test_age_groups(client, make_restaurant, add_customer):
    restaurant = await make_restaurant()
    await add_customer(restaurant, dob=_years_ago(20))
    await add_customer(restaurant, dob=_years_ago(22))
    await add_customer(restaurant, dob=_years_ago(35))
    await add_customer(restaurant, dob=_years_ago(60))

    response = await client.get("/users/age-groups", headers=restaurant.headers)

    assert response.json() == {"Gen Z": 2, "Millennials": 1, "Gen X": 1}


@pytest.mark.parametrize("age, group", [(18, "Gen Z"), (27, "Gen Z"), (28, "Millennials"), (42, "Millennials"), (43, "Gen X")])
def test_age_group_boundaries(age, group):
    assert age_group(age) == group


def test_age_counts_whole_years():
    assert age_on(date(2000, 6, 15), date(2024, 6, 14)) == 23
    assert age_on(date(2000, 6, 15), date(2024, 6, 15)) == 24
