PLACE = {"name": "Old Town", "location": "Prague", "rating": 4, "description": "Cobblestones"}


def _place(client) -> dict:
    return client.post("/places", json=PLACE).json()


def _review(client, place_id: int, **overrides) -> dict:
    body = {"placeId": place_id, "content": "Lovely", "rating": 5, "author": "Ann", **overrides}
    r = client.post("/reviews", json=body)
    assert r.status_code == 200, r.text
    return r.json()


def test_create_and_get_review(client):
    place = _place(client)
    review = _review(client, place["id"])

    assert review["placeId"] == place["id"]
    assert review["content"] == "Lovely"

    r = client.get(f"/reviews/{review['id']}")
    assert r.status_code == 200
    assert r.json()["place"]["name"] == "Old Town"


def test_review_for_missing_place_is_404(client):
    r = client.post("/reviews", json={"placeId": 999, "content": "?", "rating": 3, "author": "Bob"})
    assert r.status_code == 404
    assert r.json() == {"error": "Place not found"}


def test_review_validation(client):
    r = client.post("/reviews", json={"content": "", "rating": 7})
    assert r.status_code == 400
    errors = r.json()["errors"]
    assert "PlaceId is required and must be a number" in errors
    assert "Content is required and must be a non-empty string" in errors
    assert "Author is required and must be a non-empty string" in errors


def test_list_reviews_filters_and_orders_newest_first(client):
    a = _place(client)
    b = _place(client)
    first = _review(client, a["id"], rating=2)
    second = _review(client, a["id"], rating=5)
    _review(client, b["id"], rating=4)

    r = client.get("/reviews", params={"placeId": a["id"]})
    assert [x["id"] for x in r.json()] == [second["id"], first["id"]]

    r = client.get("/reviews", params={"minRating": 4})
    assert len(r.json()) == 2


def test_update_review_keeps_place(client):
    a = _place(client)
    b = _place(client)
    review = _review(client, a["id"])

    r = client.put(
        f"/reviews/{review['id']}",
        json={"placeId": b["id"], "content": "Changed my mind", "rating": 1, "author": "Ann"},
    )
    assert r.status_code == 200, r.text
    assert r.json()["content"] == "Changed my mind"
    assert r.json()["placeId"] == a["id"]


def test_delete_review(client):
    review = _review(client, _place(client)["id"])
    r = client.delete(f"/reviews/{review['id']}")
    assert r.status_code == 200
    assert r.json()["deletedReview"]["id"] == review["id"]
    assert client.get(f"/reviews/{review['id']}").json() == {"error": "Review not found"}


def test_deleting_place_removes_its_reviews(client):
    place = _place(client)
    review = _review(client, place["id"])

    client.delete(f"/places/{place['id']}")

    assert client.get(f"/reviews/{review['id']}").status_code == 404
    assert client.get("/reviews", params={"placeId": place["id"]}).json() == []
