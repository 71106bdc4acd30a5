"""Pickup creation, the status state machine and the completion award."""

from datetime import date, timedelta

import pytest
from sqlalchemy import func
from sqlalchemy.exc import OperationalError
from sqlmodel import select

from conftest import build_pickup_payload, tomorrow
from ecopeta.core.errors import (
    AuthorizationError,
    DownstreamError,
    NotFoundError,
    ValidationError,
)
from ecopeta.db.models import (
    LocationStatus,
    Notification,
    PickupRequest,
    PickupStatus,
    PickupWasteItem,
    PointsHistory,
    User,
    UserRole,
)
from ecopeta.schemas.pickup import PickupAddress, PickupCreate, PickupStatusUpdate
from ecopeta.services import pickups as pickup_service

IN_PROGRESS_PATH = (PickupStatus.accepted, PickupStatus.scheduled, PickupStatus.in_progress)


def _count(session, model):
    return session.exec(select(func.count()).select_from(model)).one()


def _ledger_rows(session, pickup_id):
    return session.exec(
        select(PointsHistory).where(PointsHistory.source_id == pickup_id)
    ).all()


class TestTransitionTable:
    """Tests for the static transition graph."""

    @pytest.mark.parametrize(
        "current,target",
        [
            (PickupStatus.pending, PickupStatus.accepted),
            (PickupStatus.pending, PickupStatus.cancelled),
            (PickupStatus.accepted, PickupStatus.scheduled),
            (PickupStatus.scheduled, PickupStatus.in_progress),
            (PickupStatus.in_progress, PickupStatus.completed),
            (PickupStatus.in_progress, PickupStatus.cancelled),
        ],
    )
    def test_listed_edges_are_valid(self, current, target):
        assert pickup_service.is_valid_transition(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            (PickupStatus.pending, PickupStatus.completed),
            (PickupStatus.pending, PickupStatus.scheduled),
            (PickupStatus.accepted, PickupStatus.completed),
            (PickupStatus.scheduled, PickupStatus.accepted),
            (PickupStatus.in_progress, PickupStatus.pending),
        ],
    )
    def test_unlisted_edges_are_invalid(self, current, target):
        assert not pickup_service.is_valid_transition(current, target)

    def test_terminal_statuses_have_no_exits(self):
        for terminal in pickup_service.TERMINAL_STATUSES:
            for target in PickupStatus:
                assert not pickup_service.is_valid_transition(terminal, target)


class TestCreatePickup:
    """Tests for pickup creation."""

    def test_estimated_points_and_items(self, session, household, location, plastic, metal, create_pickup):
        pickup = create_pickup(household, location, [(plastic, 2.0), (metal, 1.5)])

        assert pickup.status == PickupStatus.pending
        assert pickup.estimated_points == 50
        assert pickup.estimated_total_weight == pytest.approx(3.5)
        assert pickup.points_awarded is False
        items = session.exec(
            select(PickupWasteItem).where(PickupWasteItem.pickup_id == pickup.id)
        ).all()
        assert len(items) == 2

    def test_notifies_owner_and_requester(self, session, household, partner, location, plastic, create_pickup):
        create_pickup(household, location, [(plastic, 1.0)])

        recipients = {n.user_id for n in session.exec(select(Notification)).all()}
        assert recipients == {household.id, partner.id}

    def test_today_is_rejected(self, household, location, plastic, create_pickup):
        with pytest.raises(ValidationError, match="at least tomorrow"):
            create_pickup(household, location, [(plastic, 1.0)], scheduled_date=date.today())

    def test_past_date_is_rejected(self, household, location, plastic, create_pickup):
        yesterday = date.today() - timedelta(days=1)
        with pytest.raises(ValidationError):
            create_pickup(household, location, [(plastic, 1.0)], scheduled_date=yesterday)

    def test_tomorrow_is_accepted(self, household, location, plastic, create_pickup):
        pickup = create_pickup(household, location, [(plastic, 1.0)], scheduled_date=tomorrow())
        assert pickup.scheduled_date == tomorrow()

    def test_missing_fields(self, session, household, location):
        payload = PickupCreate(location_id=location.id)
        with pytest.raises(ValidationError, match="required fields"):
            pickup_service.create_pickup(session, household, payload)

    def test_empty_item_list(self, session, household, location):
        payload = build_pickup_payload(location.id, [])
        with pytest.raises(ValidationError, match="At least one waste item"):
            pickup_service.create_pickup(session, household, payload)

    def test_address_needs_street_and_city(self, session, household, location, plastic):
        payload = build_pickup_payload(location.id, [(plastic.id, 1.0)])
        payload.pickup_address = PickupAddress(street="Jl. Mawar 10")
        with pytest.raises(ValidationError, match="street and city"):
            pickup_service.create_pickup(session, household, payload)

    def test_unapproved_location(self, household, partner, make_location, plastic, create_pickup):
        pending = make_location(partner, status=LocationStatus.pending)
        with pytest.raises(NotFoundError):
            create_pickup(household, pending, [(plastic, 1.0)])

    def test_location_without_pickup_service(self, household, partner, make_location, plastic, create_pickup):
        dropoff_only = make_location(partner, pickup_service=False)
        with pytest.raises(ValidationError, match="does not offer pickup"):
            create_pickup(household, dropoff_only, [(plastic, 1.0)])

    def test_inactive_category(self, household, location, make_category, create_pickup):
        retired = make_category("Styrofoam", 3, is_active=False)
        with pytest.raises(ValidationError, match="Invalid waste category"):
            create_pickup(household, location, [(retired, 1.0)])

    def test_one_unknown_category_among_valid(self, session, household, location, plastic):
        payload = build_pickup_payload(location.id, [(plastic.id, 1.0), (9999, 1.0)])
        with pytest.raises(ValidationError, match="Invalid category: 9999"):
            pickup_service.create_pickup(session, household, payload)

    def test_zero_weight(self, household, location, plastic, create_pickup):
        with pytest.raises(ValidationError, match="weight > 0"):
            create_pickup(household, location, [(plastic, 0)])

    @pytest.mark.parametrize("weight", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_weight(self, session, household, location, plastic, create_pickup, weight):
        with pytest.raises(ValidationError, match="weight > 0"):
            create_pickup(household, location, [(plastic, weight)])
        assert _count(session, PickupRequest) == 0

    def test_repeated_category(self, session, household, location, plastic, create_pickup):
        with pytest.raises(ValidationError, match="only once"):
            create_pickup(household, location, [(plastic, 1.0), (plastic, 2.0)])
        assert _count(session, PickupRequest) == 0

    def test_only_households_may_request(self, partner, location, plastic, create_pickup):
        with pytest.raises(AuthorizationError):
            create_pickup(partner, location, [(plastic, 1.0)])

    def test_item_failure_leaves_no_request(self, session, household, location, plastic, create_pickup, monkeypatch):
        """The request row and its items are written together or not at all."""

        def _boom(*args, **kwargs):
            raise OperationalError("INSERT INTO pickup_waste_items", {}, Exception("disk full"))

        monkeypatch.setattr(pickup_service, "_persist_waste_items", _boom)

        with pytest.raises(DownstreamError):
            create_pickup(household, location, [(plastic, 1.0)])

        assert _count(session, PickupRequest) == 0
        assert _count(session, PickupWasteItem) == 0
        assert _count(session, Notification) == 0


class TestStatusTransitions:
    """Tests for update_status."""

    def test_illegal_transition_does_not_mutate(self, session, household, partner, location, plastic, create_pickup):
        pickup = create_pickup(household, location, [(plastic, 1.0)])

        with pytest.raises(ValidationError, match="Cannot change status from pending to completed"):
            pickup_service.update_status(
                session, partner, pickup.id, PickupStatusUpdate(status=PickupStatus.completed)
            )

        session.refresh(pickup)
        assert pickup.status == PickupStatus.pending

    def test_missing_status(self, session, household, partner, location, plastic, create_pickup):
        pickup = create_pickup(household, location, [(plastic, 1.0)])
        with pytest.raises(ValidationError, match="provide a status"):
            pickup_service.update_status(session, partner, pickup.id, PickupStatusUpdate())

    def test_walks_full_path(self, household, partner, location, plastic, create_pickup, advance):
        pickup = create_pickup(household, location, [(plastic, 1.0)])
        pickup = advance(partner, pickup, *IN_PROGRESS_PATH)
        assert pickup.status == PickupStatus.in_progress

    @pytest.mark.parametrize("terminal", [PickupStatus.completed, PickupStatus.cancelled])
    def test_terminal_is_immutable(self, session, terminal, household, partner, location, plastic, create_pickup, advance, complete):
        pickup = create_pickup(household, location, [(plastic, 1.0)])
        pickup = advance(partner, pickup, *IN_PROGRESS_PATH)
        if terminal == PickupStatus.completed:
            complete(partner, pickup, [(plastic, 1.0)])
        else:
            advance(partner, pickup, PickupStatus.cancelled)

        for target in PickupStatus:
            with pytest.raises(ValidationError):
                pickup_service.update_status(
                    session, partner, pickup.id, PickupStatusUpdate(status=target)
                )
        session.refresh(pickup)
        assert pickup.status == terminal

    def test_other_partner_is_forbidden(self, session, make_user, household, location, plastic, create_pickup):
        stranger = make_user(UserRole.mitra)
        pickup = create_pickup(household, location, [(plastic, 1.0)])
        with pytest.raises(AuthorizationError):
            pickup_service.update_status(
                session, stranger, pickup.id, PickupStatusUpdate(status=PickupStatus.accepted)
            )

    def test_requester_cannot_drive_status(self, session, household, location, plastic, create_pickup):
        pickup = create_pickup(household, location, [(plastic, 1.0)])
        with pytest.raises(AuthorizationError):
            pickup_service.update_status(
                session, household, pickup.id, PickupStatusUpdate(status=PickupStatus.accepted)
            )

    def test_admin_may_drive_any_pickup(self, household, admin, location, plastic, create_pickup, advance):
        pickup = create_pickup(household, location, [(plastic, 1.0)])
        pickup = advance(admin, pickup, PickupStatus.accepted)
        assert pickup.status == PickupStatus.accepted

    def test_unknown_pickup(self, session, partner):
        with pytest.raises(NotFoundError):
            pickup_service.update_status(
                session, partner, "missing", PickupStatusUpdate(status=PickupStatus.accepted)
            )

    def test_partner_cancel_uses_notes_or_default(self, session, household, partner, location, plastic, create_pickup):
        first = create_pickup(household, location, [(plastic, 1.0)])
        second = create_pickup(household, location, [(plastic, 1.0)])

        first = pickup_service.update_status(
            session,
            partner,
            first.id,
            PickupStatusUpdate(status=PickupStatus.cancelled, driver_notes="Truck broke down"),
        )
        second = pickup_service.update_status(
            session, partner, second.id, PickupStatusUpdate(status=PickupStatus.cancelled)
        )

        assert first.cancellation_reason == "Truck broke down"
        assert second.cancellation_reason == pickup_service.DEFAULT_PARTNER_CANCEL_REASON
        assert first.cancelled_at is not None


class TestCompletion:
    """Tests for completing a pickup and awarding points."""

    def test_requires_actual_weights(self, session, household, partner, location, plastic, create_pickup, advance):
        pickup = create_pickup(household, location, [(plastic, 1.0)])
        pickup = advance(partner, pickup, *IN_PROGRESS_PATH)

        with pytest.raises(ValidationError, match="actual weight"):
            pickup_service.update_status(
                session, partner, pickup.id, PickupStatusUpdate(status=PickupStatus.completed)
            )
        session.refresh(pickup)
        assert pickup.status == PickupStatus.in_progress
        assert pickup.points_awarded is False

    def test_every_item_needs_a_weight(self, household, partner, location, plastic, metal, create_pickup, advance, complete):
        pickup = create_pickup(household, location, [(plastic, 1.0), (metal, 1.0)])
        pickup = advance(partner, pickup, *IN_PROGRESS_PATH)
        with pytest.raises(ValidationError, match="every waste item"):
            complete(partner, pickup, [(plastic, 1.0)])

    def test_foreign_category_is_rejected(self, household, partner, location, plastic, metal, create_pickup, advance, complete):
        pickup = create_pickup(household, location, [(plastic, 1.0)])
        pickup = advance(partner, pickup, *IN_PROGRESS_PATH)
        with pytest.raises(ValidationError, match="not part of this pickup"):
            complete(partner, pickup, [(plastic, 1.0), (metal, 2.0)])

    def test_repeated_category_is_rejected(self, session, household, partner, location, plastic, create_pickup, advance, complete):
        pickup = create_pickup(household, location, [(plastic, 1.0)])
        pickup = advance(partner, pickup, *IN_PROGRESS_PATH)
        with pytest.raises(ValidationError, match="Duplicate category"):
            complete(partner, pickup, [(plastic, 1.0), (plastic, 4.0)])

        session.refresh(household)
        assert household.points == 0
        assert pickup_service.get_pickup(session, partner, pickup.id).status == PickupStatus.in_progress

    @pytest.mark.parametrize("weight", [float("nan"), float("inf")])
    def test_non_finite_actual_weight(self, session, household, partner, location, plastic, create_pickup, advance, complete, weight):
        pickup = create_pickup(household, location, [(plastic, 1.0)])
        pickup = advance(partner, pickup, *IN_PROGRESS_PATH)
        with pytest.raises(ValidationError, match="greater than 0"):
            complete(partner, pickup, [(plastic, weight)])

        session.refresh(household)
        assert household.points == 0
        assert _ledger_rows(session, pickup.id) == []

    def test_awards_points_once(self, session, household, partner, location, plastic, metal, create_pickup, advance, complete):
        pickup = create_pickup(household, location, [(plastic, 2.0), (metal, 1.0)])
        pickup = advance(partner, pickup, *IN_PROGRESS_PATH)

        pickup = complete(partner, pickup, [(plastic, 2.0), (metal, 1.5)])

        assert pickup.status == PickupStatus.completed
        assert pickup.actual_points == 50
        assert pickup.actual_total_weight == pytest.approx(3.5)
        assert pickup.points_awarded is True
        assert pickup.completed_at is not None
        session.refresh(household)
        assert household.points == 50
        assert len(_ledger_rows(session, pickup.id)) == 1

        with pytest.raises(ValidationError):
            complete(partner, pickup, [(plastic, 2.0), (metal, 1.5)])

        session.refresh(household)
        assert household.points == 50
        assert len(_ledger_rows(session, pickup.id)) == 1

    def test_award_failure_rolls_back_completion(self, session, household, partner, location, plastic, create_pickup, advance, complete, monkeypatch):
        pickup = create_pickup(household, location, [(plastic, 1.0)])
        pickup = advance(partner, pickup, *IN_PROGRESS_PATH)

        def _fail(*args, **kwargs):
            raise DownstreamError("ledger unavailable")

        monkeypatch.setattr(pickup_service, "award_points", _fail)

        with pytest.raises(DownstreamError, match="Error updating pickup status"):
            complete(partner, pickup, [(plastic, 1.0)])

        session.refresh(pickup)
        assert pickup.status == PickupStatus.in_progress
        assert pickup.points_awarded is False
        assert pickup.actual_points is None

    def test_deleted_requester_blocks_completion(self, session, household, partner, location, plastic, create_pickup, advance, complete):
        pickup = create_pickup(household, location, [(plastic, 1.0)])
        pickup = advance(partner, pickup, *IN_PROGRESS_PATH)
        pickup_id = pickup.id

        session.delete(session.get(User, household.id))
        session.commit()

        with pytest.raises(ValidationError, match="no longer exists"):
            complete(partner, pickup, [(plastic, 1.0)])

        pickup = session.get(PickupRequest, pickup_id)
        assert pickup.status == PickupStatus.in_progress
        assert _count(session, PointsHistory) == 0

    def test_deactivated_category_still_pays(self, session, household, partner, location, plastic, create_pickup, advance, complete):
        pickup = create_pickup(household, location, [(plastic, 2.0)])
        pickup = advance(partner, pickup, *IN_PROGRESS_PATH)
        plastic.is_active = False
        session.add(plastic)
        session.commit()

        pickup = complete(partner, pickup, [(plastic, 2.0)])
        assert pickup.actual_points == 20

    def test_notification_failure_does_not_fail_completion(self, session, household, partner, location, plastic, create_pickup, advance, complete, monkeypatch):
        from ecopeta.services import notifications

        pickup = create_pickup(household, location, [(plastic, 1.0)])
        pickup = advance(partner, pickup, *IN_PROGRESS_PATH)

        def _broken(*args, **kwargs):
            raise OperationalError("INSERT INTO notifications", {}, Exception("locked"))

        monkeypatch.setattr(notifications, "_insert_notification", _broken)

        pickup = complete(partner, pickup, [(plastic, 1.0)])
        assert pickup.status == PickupStatus.completed
        session.refresh(household)
        assert household.points == 10


class TestRequesterCancel:
    """Tests for cancel_pickup."""

    @pytest.mark.parametrize(
        "path",
        [
            (),
            (PickupStatus.accepted,),
            (PickupStatus.accepted, PickupStatus.scheduled),
        ],
    )
    def test_cancellable_until_in_progress(self, session, path, household, partner, location, plastic, create_pickup, advance):
        pickup = create_pickup(household, location, [(plastic, 1.0)])
        pickup = advance(partner, pickup, *path)

        pickup = pickup_service.cancel_pickup(session, household, pickup.id)

        assert pickup.status == PickupStatus.cancelled
        assert pickup.cancellation_reason == pickup_service.DEFAULT_USER_CANCEL_REASON

    def test_in_progress_cannot_be_cancelled(self, session, household, partner, location, plastic, create_pickup, advance):
        pickup = create_pickup(household, location, [(plastic, 1.0)])
        pickup = advance(partner, pickup, *IN_PROGRESS_PATH)

        with pytest.raises(ValidationError, match="at this stage"):
            pickup_service.cancel_pickup(session, household, pickup.id)
        session.refresh(pickup)
        assert pickup.status == PickupStatus.in_progress

    def test_custom_reason(self, session, household, location, plastic, create_pickup):
        pickup = create_pickup(household, location, [(plastic, 1.0)])
        pickup = pickup_service.cancel_pickup(session, household, pickup.id, reason="Moving house")
        assert pickup.cancellation_reason == "Moving house"

    def test_only_requester(self, session, make_user, household, location, plastic, create_pickup):
        neighbour = make_user(UserRole.public)
        pickup = create_pickup(household, location, [(plastic, 1.0)])
        with pytest.raises(AuthorizationError):
            pickup_service.cancel_pickup(session, neighbour, pickup.id)


class TestReads:
    """Tests for listings, schedule and stats."""

    def test_listing_is_role_filtered(self, session, make_user, make_location, household, partner, admin, location, plastic, create_pickup):
        other_partner = make_user(UserRole.mitra)
        other_location = make_location(other_partner, name="Bank Sampah Lain")
        neighbour = make_user(UserRole.public)

        mine = create_pickup(household, location, [(plastic, 1.0)])
        theirs = create_pickup(neighbour, other_location, [(plastic, 1.0)])

        assert [p.id for p in pickup_service.list_pickups(session, household)] == [mine.id]
        assert [p.id for p in pickup_service.list_pickups(session, partner)] == [mine.id]
        assert {p.id for p in pickup_service.list_pickups(session, admin)} == {mine.id, theirs.id}

    def test_status_filter_accepts_csv(self, session, household, partner, location, plastic, create_pickup, advance):
        first = create_pickup(household, location, [(plastic, 1.0)])
        create_pickup(household, location, [(plastic, 1.0)])
        advance(partner, first, PickupStatus.accepted)

        accepted = pickup_service.list_pickups(session, partner, status="accepted,scheduled")
        assert [p.id for p in accepted] == [first.id]

    def test_invalid_status_filter(self, session, partner):
        # partner owns no location here, so the listing would otherwise be empty
        with pytest.raises(ValidationError):
            pickup_service.list_pickups(session, partner, status="lost")

    def test_invalid_schedule_filter_without_locations(self, session, partner):
        with pytest.raises(ValidationError):
            pickup_service.partner_schedule(session, partner, status="lost")

    def test_schedule_orders_by_date_then_slot(self, session, household, partner, location, plastic, create_pickup):
        later = create_pickup(
            household, location, [(plastic, 1.0)], scheduled_date=tomorrow() + timedelta(days=1)
        )
        evening = create_pickup(household, location, [(plastic, 1.0)], time_slot="evening")
        morning = create_pickup(household, location, [(plastic, 1.0)], time_slot="morning")

        schedule = pickup_service.partner_schedule(session, partner)
        assert [p.id for p in schedule] == [morning.id, evening.id, later.id]

    def test_schedule_hides_finished(self, session, household, partner, location, plastic, create_pickup):
        pickup = create_pickup(household, location, [(plastic, 1.0)])
        pickup_service.cancel_pickup(session, household, pickup.id)
        assert pickup_service.partner_schedule(session, partner) == []

    def test_schedule_forbidden_for_households(self, session, household):
        with pytest.raises(AuthorizationError):
            pickup_service.partner_schedule(session, household)

    def test_my_pickups_paginates(self, session, household, location, plastic, create_pickup):
        for _ in range(3):
            create_pickup(household, location, [(plastic, 1.0)])

        items, total = pickup_service.list_my_pickups(session, household, page=2, limit=2)
        assert total == 3
        assert len(items) == 1

    def test_stats(self, session, household, partner, location, plastic, create_pickup, advance, complete):
        done = create_pickup(household, location, [(plastic, 2.0)])
        create_pickup(household, location, [(plastic, 1.0)])
        done = advance(partner, done, *IN_PROGRESS_PATH)
        complete(partner, done, [(plastic, 2.5)])

        stats = pickup_service.pickup_stats(session, household)
        assert stats["total"] == 2
        assert stats["pending"] == 1
        assert stats["completed"] == 1
        assert stats["total_weight"] == pytest.approx(2.5)
        assert stats["total_points_earned"] == 25

    def test_get_pickup_visibility(self, session, make_user, household, partner, location, plastic, create_pickup):
        pickup = create_pickup(household, location, [(plastic, 1.0)])
        assert pickup_service.get_pickup(session, partner, pickup.id).id == pickup.id
        with pytest.raises(AuthorizationError):
            pickup_service.get_pickup(session, make_user(UserRole.public), pickup.id)


class TestPickupApi:
    """End-to-end over HTTP."""

    def test_full_lifecycle(self, session, client_for, household, partner, location, make_category):
        category = make_category("Kardus", 15)
        requester = client_for(household)
        driver = client_for(partner)

        resp = requester.post(
            "/api/v1/pickups",
            json={
                "location_id": location.id,
                "waste_items": [{"category_id": category.id, "estimated_weight": 3}],
                "pickup_address": {"street": "Jl. Mawar 10", "city": "Bandung"},
                "scheduled_date": tomorrow().isoformat(),
                "time_slot": "morning",
            },
        )
        assert resp.status_code == 201, resp.text
        body = resp.json()
        assert body["success"] is True
        pickup_id = body["data"]["id"]
        assert body["data"]["estimated_points"] == 45
        assert body["data"]["status"] == "pending"
        assert body["data"]["waste_items"][0]["category"]["name"] == "Kardus"

        resp = driver.put(f"/api/v1/pickups/{pickup_id}/status", json={"status": "accepted"})
        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "accepted"

        # accepted -> completed skips the schedule and is refused outright
        resp = driver.put(f"/api/v1/pickups/{pickup_id}/status", json={"status": "completed"})
        assert resp.status_code == 400
        assert resp.json()["success"] is False

        for status in ("scheduled", "in_progress"):
            resp = driver.put(f"/api/v1/pickups/{pickup_id}/status", json={"status": status})
            assert resp.status_code == 200

        resp = driver.put(f"/api/v1/pickups/{pickup_id}/status", json={"status": "completed"})
        assert resp.status_code == 400
        assert "actual weight" in resp.json()["error"]

        resp = driver.put(
            f"/api/v1/pickups/{pickup_id}/status",
            json={
                "status": "completed",
                "actual_weight_items": [{"category_id": category.id, "actual_weight": 2.8}],
            },
        )
        assert resp.status_code == 200, resp.text
        data = resp.json()["data"]
        assert data["actual_points"] == 42
        assert data["points_awarded"] is True

        session.refresh(household)
        assert household.points == 42
        assert len(_ledger_rows(session, pickup_id)) == 1

    def test_requires_login(self, client_for):
        resp = client_for().get("/api/v1/pickups")
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "error": "Not authorized to access this route"}

    def test_partner_cannot_create(self, client_for, partner, location, plastic):
        resp = client_for(partner).post(
            "/api/v1/pickups",
            json={"location_id": location.id},
        )
        assert resp.status_code == 403

    def test_missing_fields_message(self, client_for, household):
        resp = client_for(household).post("/api/v1/pickups", json={})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Please provide all required fields"

    def test_requester_cancel_endpoint(self, client_for, household, location, plastic, create_pickup):
        pickup = create_pickup(household, location, [(plastic, 1.0)])
        resp = client_for(household).put(
            f"/api/v1/pickups/{pickup.id}/cancel", json={"reason": "Changed my mind"}
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["id"] == pickup.id
        assert data["status"] == "cancelled"
        assert data["cancellation_reason"] == "Changed my mind"

    def test_responses_carry_the_pickup_row(self, client_for, household, partner, location, plastic):
        """Sending notifications must not blank out the returned pickup."""
        resp = client_for(household).post(
            "/api/v1/pickups",
            json={
                "location_id": location.id,
                "waste_items": [{"category_id": plastic.id, "estimated_weight": 1}],
                "pickup_address": {"street": "Jl. Mawar 10", "city": "Bandung"},
                "scheduled_date": tomorrow().isoformat(),
                "time_slot": "afternoon",
            },
        )
        assert resp.status_code == 201, resp.text
        data = resp.json()["data"]
        pickup_id = data["id"]
        assert pickup_id
        assert data["status"] == "pending"
        assert data["user_id"] == household.id

        resp = client_for(partner).put(
            f"/api/v1/pickups/{pickup_id}/status",
            json={"status": "cancelled", "driver_notes": "Truk rusak"},
        )
        assert resp.status_code == 200, resp.text
        data = resp.json()["data"]
        assert data["id"] == pickup_id
        assert data["status"] == "cancelled"
        assert data["cancellation_reason"] == "Truk rusak"

    def test_invalid_status_filter_is_400(self, client_for, partner):
        resp = client_for(partner).get("/api/v1/pickups?status=lost")
        assert resp.status_code == 400
        assert resp.json()["success"] is False

    def test_my_pickups_endpoint(self, client_for, household, location, plastic, create_pickup):
        create_pickup(household, location, [(plastic, 1.0)])
        body = client_for(household).get("/api/v1/pickups/my-pickups?limit=10").json()
        assert body["count"] == 1
        assert body["total"] == 1
        assert body["pagination"] == {"page": 1, "limit": 10, "pages": 1}

    def test_schedule_and_stats_routes_are_not_ids(self, client_for, partner):
        driver = client_for(partner)
        assert driver.get("/api/v1/pickups/schedule").status_code == 200
        assert driver.get("/api/v1/pickups/stats").status_code == 200

    def test_unknown_pickup_is_404(self, client_for, household):
        resp = client_for(household).get("/api/v1/pickups/does-not-exist")
        assert resp.status_code == 404
        assert resp.json()["error"] == "Pickup request not found"
