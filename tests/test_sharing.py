"""
Share links — token issuance, resolution, view counting, deactivation.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from archicalc import models
from archicalc.errors import StoreError
from archicalc.sharing import SharingService


@pytest.fixture
def sharing(store):
    return SharingService(store, base_url="https://archicalc.example/")


@pytest.fixture
def calculation_id(store, user_id):
    row = store.insert_calculation(
        user_id=user_id,
        calculator_type="Área",
        input_data={"width": 4, "length": 5},
        result={"area": 20},
        name="Sala",
    )
    return row["id"]


def _share(db, token):
    db.expire_all()
    return db.query(models.SharedCalculation).filter(models.SharedCalculation.share_token == token).one()


def test_create_link_returns_url_with_store_token(sharing, db, user_id, calculation_id):
    result = sharing.create_link(user_id, calculation_id)

    assert result.success is True
    assert result.token
    assert result.share_url == f"https://archicalc.example/shared/{result.token}"

    share = _share(db, result.token)
    assert share.calculation_id == calculation_id
    assert share.expires_at is None
    assert share.is_active is True
    assert share.view_count == 0


def test_each_request_issues_a_new_link(sharing, user_id, calculation_id):
    first = sharing.create_link(user_id, calculation_id)
    second = sharing.create_link(user_id, calculation_id)

    assert first.token != second.token


def test_create_link_requires_identity():
    store = MagicMock()
    result = SharingService(store, base_url="http://x").create_link(None, "calc-1")

    assert result.success is False
    assert result.error == "Usuário não autenticado"
    store.insert_shared_calculation.assert_not_called()


def test_cannot_share_someone_elses_calculation(sharing, make_user, calculation_id):
    stranger = make_user("stranger@obra.com")

    result = sharing.create_link(stranger, calculation_id)

    assert result.success is False
    assert "not found" in result.error


def test_resolve_returns_snapshot_and_counts_each_view(sharing, db, user_id, calculation_id):
    token = sharing.create_link(user_id, calculation_id).token

    first = sharing.resolve_link(token)
    assert first.success is True
    assert first.data["calculation_id"] == calculation_id
    assert first.data["name"] == "Sala"
    assert first.data["result"] == {"area": 20}
    assert first.data["share_expires_at"] is None
    assert _share(db, token).view_count == 1

    sharing.resolve_link(token)
    assert _share(db, token).view_count == 2


def test_resolve_unknown_token_fails_without_counting(sharing):
    result = sharing.resolve_link("does-not-exist")

    assert result.success is False
    assert result.error


def test_link_with_future_expiry_resolves(sharing, user_id, calculation_id):
    expires_at = datetime.now(timezone.utc) + timedelta(days=7)
    token = sharing.create_link(user_id, calculation_id, expires_at=expires_at).token

    result = sharing.resolve_link(token)

    assert result.success is True
    assert result.data["share_expires_at"] is not None


def test_expired_link_is_rejected(sharing, db, user_id, calculation_id):
    token = sharing.create_link(user_id, calculation_id, expires_at=datetime.utcnow() + timedelta(days=1)).token
    share = _share(db, token)
    share.expires_at = datetime.utcnow() - timedelta(minutes=1)
    db.commit()

    result = sharing.resolve_link(token)

    assert result.success is False
    assert "expired" in result.error
    assert _share(db, token).view_count == 0


def test_view_count_failure_does_not_fail_the_read():
    store = MagicMock()
    store.get_shared_calculation.return_value = {"calculation_id": "c1"}
    store.increment_share_view_count.side_effect = StoreError("lost connection", "rpc increment_share_view_count")

    result = SharingService(store, base_url="http://x").resolve_link("tok")

    assert result.success is True
    assert result.data == {"calculation_id": "c1"}


def test_list_links_active_only_newest_first(sharing, store, user_id, calculation_id):
    older = sharing.create_link(user_id, calculation_id).data
    newer = sharing.create_link(user_id, calculation_id).data
    retired = sharing.create_link(user_id, calculation_id).data
    sharing.deactivate_link(user_id, retired["id"])

    result = sharing.list_links(user_id)

    assert result.success is True
    ids = [row["id"] for row in result.data]
    assert ids == [newer["id"], older["id"]]
    assert result.data[0]["calculation"]["name"] == "Sala"
    assert result.data[0]["calculation"]["calculator_type"] == "Área"


def test_deactivated_link_no_longer_resolves(sharing, user_id, calculation_id):
    created = sharing.create_link(user_id, calculation_id)

    assert sharing.deactivate_link(user_id, created.data["id"]).success is True

    result = sharing.resolve_link(created.token)
    assert result.success is False


def test_only_the_owner_can_deactivate(sharing, db, make_user, user_id, calculation_id):
    stranger = make_user("stranger@obra.com")
    created = sharing.create_link(user_id, calculation_id)

    result = sharing.deactivate_link(stranger, created.data["id"])

    assert result.success is False
    assert _share(db, created.token).is_active is True
