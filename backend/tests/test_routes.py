"""
HTTP surface tests: caller identity, role gating, and error-to-status mapping.
"""

from rally.models import User
from rally.services import scoring_service


def test_health(client, db_session):
    response = client.get("/api/system/health")

    assert response.status_code == 200
    assert response.get_json()["checks"]["database"]["status"] == "healthy"


def test_missing_or_unknown_caller_is_401(client, db_session, activity):
    assert client.post("/api/submissions/", json={"activity_id": activity.id}).status_code == 401
    assert client.post(
        "/api/submissions/", json={"activity_id": activity.id}, headers={"X-User-Id": "9999"},
    ).status_code == 401
    assert client.post(
        "/api/submissions/", json={"activity_id": activity.id}, headers={"X-User-Id": "abc"},
    ).status_code == 401


def test_inactive_caller_is_401(client, db_session, student, activity, as_user):
    student.is_active = False
    db_session.commit()

    response = client.post("/api/submissions/", json={"activity_id": activity.id}, headers=as_user(student))
    assert response.status_code == 401


def test_submission_review_flow(client, db_session, student, coach, activity, red_team, as_user):
    response = client.post(
        "/api/submissions/",
        json={"activity_id": activity.id, "submission_data": {"photo_url": "https://img/1.jpg"}},
        headers=as_user(student),
    )
    assert response.status_code == 201
    submission_id = response.get_json()["submission"]["id"]

    # Students cannot review
    response = client.post(f"/api/submissions/{submission_id}/approve", headers=as_user(student))
    assert response.status_code == 403

    response = client.post(f"/api/submissions/{submission_id}/approve", json={}, headers=as_user(coach))
    assert response.status_code == 200
    assert response.get_json()["submission"]["status"] == "APPROVED"
    assert scoring_service.team_score(red_team.id) == 30

    response = client.post(f"/api/submissions/{submission_id}/approve", json={}, headers=as_user(coach))
    assert response.status_code == 409
    assert response.get_json()["kind"] == "AlreadyReviewed"

    response = client.post(f"/api/submissions/{submission_id}/unapprove", headers=as_user(coach))
    assert response.status_code == 200
    assert scoring_service.team_score(red_team.id) == 0


def test_approve_rejects_decimal_points(client, db_session, student, coach, activity, as_user):
    response = client.post("/api/submissions/", json={"activity_id": activity.id}, headers=as_user(student))
    submission_id = response.get_json()["submission"]["id"]

    response = client.post(
        f"/api/submissions/{submission_id}/approve", json={"points": "2.5"}, headers=as_user(coach),
    )
    assert response.status_code == 400


def test_students_only_list_their_own_submissions(
    client, db_session, student, teammate, activity, as_user,
):
    client.post("/api/submissions/", json={"activity_id": activity.id}, headers=as_user(student))
    client.post("/api/submissions/", json={"activity_id": activity.id}, headers=as_user(teammate))

    response = client.get("/api/submissions/", headers=as_user(student))
    submissions = response.get_json()["submissions"]
    assert [s["user_id"] for s in submissions] == [student.id]


def test_sale_endpoints(client, db_session, hoodie, student, coach, red_team, as_user):
    payload = {
        "product_id": hoodie.id,
        "size": "M",
        "quantity": 2,
        "user_id": student.id,
        "payment_method": "CASH",
        "amount_paid_cents": 8000,
    }
    response = client.post("/api/sales/", json=payload, headers=as_user(coach))
    assert response.status_code == 201
    sale_id = response.get_json()["sale"]["id"]

    response = client.post("/api/sales/", json={**payload, "quantity": 1}, headers=as_user(coach))
    assert response.status_code == 409
    body = response.get_json()
    assert body["kind"] == "InsufficientStock"
    assert body["details"]["on_hand"] == 0

    response = client.delete(f"/api/sales/{sale_id}", headers=as_user(coach))
    assert response.status_code == 200
    assert response.get_json()["points_removed"] == 100


def test_sale_rejects_unknown_fields_and_bad_quantities(client, db_session, hoodie, student, coach, as_user):
    base = {
        "product_id": hoodie.id,
        "size": "M",
        "quantity": 1,
        "user_id": student.id,
        "payment_method": "CASH",
        "amount_paid_cents": 4000,
    }
    assert client.post("/api/sales/", json={**base, "points_awarded": 999}, headers=as_user(coach)).status_code == 400
    assert client.post("/api/sales/", json={**base, "quantity": 0}, headers=as_user(coach)).status_code == 400
    assert client.post("/api/sales/", json={**base, "quantity": "1.5"}, headers=as_user(coach)).status_code == 400


def test_students_cannot_sell(client, db_session, hoodie, student, as_user):
    response = client.post(
        "/api/sales/",
        json={
            "product_id": hoodie.id, "size": "M", "quantity": 1, "user_id": student.id,
            "payment_method": "CASH", "amount_paid_cents": 4000,
        },
        headers=as_user(student),
    )
    assert response.status_code == 403


def test_other_coach_cannot_delete_sale(client, db_session, hoodie, student, coach, other_coach, as_user):
    response = client.post(
        "/api/sales/",
        json={
            "product_id": hoodie.id, "size": "M", "quantity": 1, "user_id": student.id,
            "payment_method": "CASH", "amount_paid_cents": 4000,
        },
        headers=as_user(coach),
    )
    sale_id = response.get_json()["sale"]["id"]

    response = client.delete(f"/api/sales/{sale_id}", headers=as_user(other_coach))
    assert response.status_code == 403


def test_student_buys_ticket_for_themselves(client, db_session, ticket, student, teammate, red_team, as_user):
    response = client.post(
        "/api/sales/tickets",
        json={"product_id": ticket.id, "user_id": teammate.id},
        headers=as_user(student),
    )

    assert response.status_code == 201
    assert response.get_json()["sale"]["user_id"] == student.id
    assert scoring_service.team_score(red_team.id) == 20


def test_manual_points_endpoints(client, db_session, student, coach, admin, red_team, as_user):
    response = client.post(
        "/api/points/",
        json={"user_id": student.id, "points": 15, "description": "Cleanup crew"},
        headers=as_user(coach),
    )
    assert response.status_code == 201
    assert scoring_service.team_score(red_team.id) == 15

    response = client.get("/api/points/history", headers=as_user(coach))
    assert len(response.get_json()["awards"]) == 1

    # Reset is admin-only
    assert client.post(f"/api/points/teams/{red_team.id}/reset", headers=as_user(coach)).status_code == 403
    response = client.post(f"/api/points/teams/{red_team.id}/reset", headers=as_user(admin))
    assert response.status_code == 200
    assert response.get_json()["points_removed"] == 15


def test_inventory_endpoints(client, db_session, hoodie, staff, coach, as_user):
    response = client.put(f"/api/inventory/{hoodie.id}/m", json={"quantity": 7}, headers=as_user(staff))
    assert response.status_code == 200
    assert response.get_json()["line"]["quantity"] == 7

    assert client.put(
        f"/api/inventory/{hoodie.id}/M", json={"quantity": -1}, headers=as_user(staff),
    ).status_code == 400
    assert client.put(
        f"/api/inventory/{hoodie.id}/M", json={"quantity": 1}, headers=as_user(coach),
    ).status_code == 403

    response = client.delete(f"/api/inventory/{hoodie.id}/M", headers=as_user(staff))
    assert response.status_code == 403
    assert response.get_json()["details"]["on_hand"] == 7

    response = client.get(f"/api/inventory/{hoodie.id}", headers=as_user(coach))
    assert response.get_json()["total_quantity"] == 7


def test_product_and_activity_admin(client, db_session, staff, student, as_user):
    response = client.post(
        "/api/products/",
        json={"name": "Cap", "price_cents": 1500, "points": 10, "sizes": {"one": 4}},
        headers=as_user(staff),
    )
    assert response.status_code == 201
    assert response.get_json()["lines"][0]["size"] == "ONE"

    duplicate = client.post("/api/products/", json={"name": "Cap"}, headers=as_user(staff))
    assert duplicate.status_code == 409

    response = client.post(
        "/api/activities/",
        json={"title": "Bake sale", "points": 20, "is_published": False},
        headers=as_user(staff),
    )
    assert response.status_code == 201

    # Unpublished activities are hidden from students
    listing = client.get("/api/activities/", headers=as_user(student)).get_json()["activities"]
    assert listing == []


def test_leaderboard_endpoints(client, db_session, student, blue_student, red_team, blue_team, as_user):
    response = client.get("/api/leaderboard/")
    assert [e["team_id"] for e in response.get_json()["leaderboard"]] == [red_team.id, blue_team.id]

    assert client.get(f"/api/leaderboard/teams/{red_team.id}").status_code == 200
    assert client.get("/api/leaderboard/teams/9999").status_code == 404

    assert client.get(f"/api/leaderboard/users/{student.id}", headers=as_user(student)).status_code == 200
    assert client.get(f"/api/leaderboard/users/{blue_student.id}", headers=as_user(student)).status_code == 403


def test_user_lookup_header_case(client, db_session, student, activity):
    user = db_session.get(User, student.id)
    response = client.get("/api/submissions/", headers={"x-user-id": f" {user.id} "})
    assert response.status_code == 200


def test_delete_product_endpoint(client, db_session, hoodie, ticket, student, coach, staff, admin, as_user):
    assert client.delete(f"/api/products/{hoodie.id}", headers=as_user(staff)).status_code == 403

    sale = client.post(
        "/api/sales/",
        json={
            "product_id": ticket.id, "size": "ONESIZE", "quantity": 1, "user_id": student.id,
            "payment_method": "CASH", "amount_paid_cents": 2500,
        },
        headers=as_user(coach),
    )
    assert sale.status_code == 201
    sold = client.delete(f"/api/products/{ticket.id}", headers=as_user(admin))
    assert sold.status_code == 409

    response = client.delete(f"/api/products/{hoodie.id}", headers=as_user(admin))
    assert response.status_code == 200
    assert response.get_json()["product"]["id"] == hoodie.id
    assert client.delete(f"/api/products/{hoodie.id}", headers=as_user(admin)).status_code == 404


def test_sale_with_unknown_team_is_404(client, db_session, hoodie, student, coach, as_user):
    response = client.post(
        "/api/sales/",
        json={
            "product_id": hoodie.id, "size": "M", "quantity": 1, "user_id": student.id, "team_id": 9999,
            "payment_method": "CASH", "amount_paid_cents": 4000,
        },
        headers=as_user(coach),
    )

    assert response.status_code == 404
    assert response.get_json()["details"]["team_id"] == 9999
