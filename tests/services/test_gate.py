# tests/services/test_gate.py
import pytest
from types import SimpleNamespace
from unittest.mock import MagicMock

from membership.services.gate import Gate, PolicyRegistry, AuthContext, handle_matches, default_ownership_policy
from membership.services.membership_service import MembershipService
from membership.services.permission_service import PermissionService
from membership.database import models

# ===================================================================
#  Fixture 설정
# ===================================================================

@pytest.fixture
def user() -> models.User:
    return models.User(id=7, username="bob")

@pytest.fixture
def mock_membership_service() -> MagicMock:
    """MembershipService에 대한 모의 객체. 기본값은 아무 권한도 없는 사용자입니다."""
    service = MagicMock(spec=MembershipService)
    service.permission_handles_for.return_value = ([], [])
    return service

@pytest.fixture
def gate(mock_membership_service: MagicMock) -> Gate:
    return Gate(mock_membership_service, PolicyRegistry(), separator=".")

def grants(service: MagicMock, direct=(), via_groups=()):
    service.permission_handles_for.return_value = (list(direct), list(via_groups))

# ===================================================================
#  check 테스트
# ===================================================================
class TestCheck:
    def test_direct_grant(self, gate: Gate, mock_membership_service: MagicMock, user):
        """직접 부여된 권한만 허용하고, 부여되지 않은 권한은 거부합니다."""
        grants(mock_membership_service, direct=["reports.view"])

        assert gate.check(user, "reports.view") is True
        assert gate.check(user, "reports.edit") is False
        mock_membership_service.permission_handles_for.assert_called_with(7)

    def test_group_grant(self, gate: Gate, mock_membership_service: MagicMock, user):
        grants(mock_membership_service, direct=["reports.view"], via_groups=["reports.edit"])

        assert gate.check(user, "reports.edit") is True

    def test_guest_is_always_denied(self, gate: Gate, mock_membership_service: MagicMock):
        assert gate.check(None, "reports.view") is False
        mock_membership_service.permission_handles_for.assert_not_called()

    def test_wildcard_handle_covers_children(self, gate: Gate, mock_membership_service: MagicMock, user):
        grants(mock_membership_service, via_groups=["posts.*"])

        assert gate.check(user, "posts.edit") is True
        assert gate.check(user, "posts.comments.delete") is True
        assert gate.check(user, "postsx.edit") is False
        assert gate.check(user, "posts") is False

class TestOwnership:
    def test_direct_grant_applies_to_owned_resource_only(self, gate: Gate, mock_membership_service: MagicMock, user):
        grants(mock_membership_service, direct=["posts.edit"])

        assert gate.check(user, "posts.edit", {"user_id": 7}, "user_id") is True
        assert gate.check(user, "posts.edit", {"user_id": 8}, "user_id") is False

    def test_group_grant_applies_to_any_resource(self, gate: Gate, mock_membership_service: MagicMock, user):
        grants(mock_membership_service, via_groups=["posts.edit"])

        assert gate.check(user, "posts.edit", SimpleNamespace(author_id=99), "author_id") is True

    def test_owner_without_permission_is_denied(self, gate: Gate, user):
        assert gate.check(user, "posts.edit", {"user_id": 7}, "user_id") is False

    def test_custom_ownership_policy_is_invoked(self, mock_membership_service: MagicMock, user):
        policy = MagicMock(return_value=True)
        gate = Gate(mock_membership_service, ownership_policy=policy)
        resource = {"owner": 7}

        assert gate.check(user, "posts.edit", resource, "owner") is True
        policy.assert_called_once_with(user, resource, "owner", False, False)

    def test_resource_without_owner_field_ignores_ownership(self, gate: Gate, mock_membership_service: MagicMock, user):
        grants(mock_membership_service, direct=["posts.edit"])

        assert gate.check(user, "posts.edit", {"user_id": 8}) is True

    def test_default_policy_reads_attributes(self, user):
        assert default_ownership_policy(user, SimpleNamespace(user_id=7), "user_id", True, False) is True
        assert default_ownership_policy(user, SimpleNamespace(), "user_id", True, False) is False

# ===================================================================
#  정책 등록 및 allows 테스트
# ===================================================================
class TestRegistry:
    def test_register_from_permission_store(self, gate: Gate, mock_membership_service: MagicMock, user):
        permission_service = MagicMock(spec=PermissionService)
        permission_service.is_provisioned.return_value = True
        permission_service.list_handles.return_value = ["reports.view", "reports.edit"]
        grants(mock_membership_service, direct=["reports.view"])

        assert gate.registry.register_from(permission_service) == 2
        assert gate.abilities() == ["reports.edit", "reports.view"]
        assert gate.allows("reports.view", user) is True
        assert gate.allows("reports.edit", user) is False
        assert gate.denies("reports.edit", user) is True

    def test_registration_skipped_when_store_not_provisioned(self):
        """권한 테이블이 없으면 예외 없이 등록을 건너뜁니다."""
        registry = PolicyRegistry()
        permission_service = MagicMock(spec=PermissionService)
        permission_service.is_provisioned.return_value = False

        assert registry.register_from(permission_service) == 0
        assert registry.abilities() == []
        permission_service.list_handles.assert_not_called()

    def test_unregistered_handle_is_denied(self, gate: Gate, mock_membership_service: MagicMock, user):
        grants(mock_membership_service, direct=["reports.view"])

        assert gate.allows("reports.view", user) is False

    def test_allows_passes_resource_and_owner_field(self, gate: Gate, mock_membership_service: MagicMock, user):
        gate.registry.register_handles(["posts.edit"])
        grants(mock_membership_service, direct=["posts.edit"])

        assert gate.allows("posts.edit", user, {"user_id": 7}) is True
        assert gate.allows("posts.edit", user, {"user_id": 8}) is False
        assert gate.allows("posts.edit", user, {"author_id": 7}, owner_field="author_id") is True

    def test_custom_predicate(self, gate: Gate, user):
        gate.registry.define("always", lambda g, u, resource, owner_field: True)

        assert gate.allows("always", user) is True

# ===================================================================
#  기타
# ===================================================================
@pytest.mark.parametrize("held, requested, expected", [
    ("a.b", "a.b", True),
    ("a.b", "a.c", False),
    ("a.*", "a.b", True),
    ("a.*", "a.*", True),
    ("a*", "ab", False),
])
def test_handle_matches(held, requested, expected):
    assert handle_matches(held, requested, ".") is expected

def test_auth_context(user):
    guest = AuthContext()
    assert guest.is_guest() and not guest.is_logged_in()
    assert guest.user() is None
    assert guest.user("username") is None

    context = AuthContext(user)
    assert context.is_logged_in()
    assert context.user() is user
    assert context.user("username") == "bob"
