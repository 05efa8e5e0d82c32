# tests/services/test_membership_service.py
import pytest
from unittest.mock import MagicMock, call

from membership.services.membership_service import MembershipService, BatchResult
from membership.services.group_service import GroupService
from membership.services.permission_service import PermissionService
from membership.services.references import ById, ByHandle, ByValue
from membership.services.exceptions import *
from membership.repositories.interfaces import IUserRepository, IMembershipRepository
from membership.database import models

# ===================================================================
#  Fixture 설정
# ===================================================================

@pytest.fixture
def mock_user_repo() -> MagicMock:
    return MagicMock(spec=IUserRepository)

@pytest.fixture
def mock_membership_repo() -> MagicMock:
    return MagicMock(spec=IMembershipRepository)

@pytest.fixture
def mock_group_service() -> MagicMock:
    """GroupService에 대한 모의 객체. 기본적으로 ID 1의 제한 없는 그룹을 돌려줍니다."""
    service = MagicMock(spec=GroupService)
    service.get_or_raise.return_value = models.Group(id=1, name="Members", handle="members", limit=0)
    service.is_full.return_value = False
    return service

@pytest.fixture
def mock_permission_service() -> MagicMock:
    return MagicMock(spec=PermissionService)

@pytest.fixture
def user() -> models.User:
    return models.User(id=10, username="alice", primary_group_id=None)

@pytest.fixture
def membership_service(mock_user_repo, mock_membership_repo, mock_group_service, mock_permission_service, user) -> MembershipService:
    mock_user_repo.find_by_id.return_value = user
    return MembershipService(mock_user_repo, mock_membership_repo, mock_group_service, mock_permission_service, default_group_id=1)

def make_permission(id: int, handle: str) -> models.Permission:
    return models.Permission(id=id, name=handle, handle=handle, type=handle.split(".")[0])

# ===================================================================
#  assign / retract 테스트
# ===================================================================
class TestAssign:
    def test_assign_adds_membership(self, membership_service: MembershipService, mock_membership_repo: MagicMock, mock_user_repo: MagicMock):
        assert membership_service.assign(10, 1) is True

        mock_membership_repo.add_member.assert_called_once_with(1, 10)
        mock_user_repo.set_primary_group.assert_not_called()

    def test_assign_fails_when_group_is_full(self, membership_service: MembershipService, mock_group_service: MagicMock, mock_membership_repo: MagicMock):
        """인원 제한에 도달한 그룹에 배정하면 GroupFullError가 발생하고 멤버십은 추가되지 않습니다."""
        mock_group_service.get_or_raise.return_value = models.Group(id=1, name="VIP", handle="vip", limit=2)
        mock_group_service.is_full.return_value = True

        with pytest.raises(GroupFullError):
            membership_service.assign(10, 1, make_primary=True)
        mock_membership_repo.add_member.assert_not_called()

    def test_assign_primary_sets_primary_group_after_membership(self, membership_service: MembershipService, mock_membership_repo: MagicMock, mock_user_repo: MagicMock, user: models.User):
        """멤버십 삽입이 먼저, 주 그룹 지정이 그 다음에 일어나야 합니다."""
        manager = MagicMock()
        manager.attach_mock(mock_membership_repo.add_member, "add_member")
        manager.attach_mock(mock_user_repo.set_primary_group, "set_primary_group")

        membership_service.assign(10, 1, make_primary=True)

        assert manager.mock_calls == [call.add_member(1, 10), call.set_primary_group(user, 1)]

    def test_assign_primary_fails_open(self, membership_service: MembershipService, mock_membership_repo: MagicMock, mock_user_repo: MagicMock):
        """주 그룹 지정이 실패해도 이미 추가된 멤버십은 되돌리지 않습니다."""
        mock_user_repo.set_primary_group.side_effect = RuntimeError("db down")

        with pytest.raises(RuntimeError):
            membership_service.assign(10, 1, make_primary=True)
        mock_membership_repo.add_member.assert_called_once_with(1, 10)
        mock_membership_repo.remove_member.assert_not_called()

    def test_assign_unknown_user(self, membership_service: MembershipService, mock_user_repo: MagicMock, mock_membership_repo: MagicMock):
        mock_user_repo.find_by_id.return_value = None

        with pytest.raises(UserNotFoundError):
            membership_service.assign(404, 1)
        mock_membership_repo.add_member.assert_not_called()

    def test_assign_unknown_group(self, membership_service: MembershipService, mock_group_service: MagicMock):
        mock_group_service.get_or_raise.side_effect = GroupNotFoundError("nope")

        with pytest.raises(GroupNotFoundError):
            membership_service.assign(10, 404)

    def test_assign_capacity_check_is_not_atomic(self, membership_service: MembershipService, mock_group_service: MagicMock, mock_membership_repo: MagicMock):
        """
        알려진 soft limit: 두 요청이 삽입 전에 모두 용량 확인을 통과하면 둘 다 추가됩니다.
        (limit=1 그룹에서 두 요청 모두 멤버 수 0을 본 상황을 시뮬레이션)
        """
        mock_group_service.get_or_raise.return_value = models.Group(id=1, name="Solo", handle="solo", limit=1)
        mock_group_service.is_full.return_value = False

        membership_service.assign(10, 1)
        membership_service.assign(11, 1)

        assert mock_membership_repo.add_member.call_count == 2

    def test_assign_default_group(self, membership_service: MembershipService, mock_group_service: MagicMock, mock_user_repo: MagicMock, user: models.User):
        membership_service.assign_default_group(10)

        mock_group_service.get_or_raise.assert_called_once_with(1)
        mock_user_repo.set_primary_group.assert_called_once_with(user, 1)

class TestRetract:
    def test_retract_is_idempotent_and_keeps_primary_group(self, membership_service: MembershipService, mock_membership_repo: MagicMock, mock_user_repo: MagicMock):
        membership_service.retract(10, 1)
        membership_service.retract(10, 1)

        assert mock_membership_repo.remove_member.call_args_list == [call(1, 10), call(1, 10)]
        mock_user_repo.set_primary_group.assert_not_called()

    def test_has_member_delegates_to_repository(self, membership_service: MembershipService, mock_membership_repo: MagicMock):
        mock_membership_repo.has_member.return_value = True

        assert membership_service.has_member(1, 10) is True
        mock_membership_repo.has_member.assert_called_once_with(1, 10)

# ===================================================================
#  리더 테스트
# ===================================================================
class TestLeaders:
    def test_leader_operations_never_touch_membership(self, membership_service: MembershipService, mock_membership_repo: MagicMock, mock_group_service: MagicMock):
        membership_service.add_leader(10, 1)
        membership_service.remove_leader(10, 1)

        mock_membership_repo.add_leader.assert_called_once_with(1, 10)
        mock_membership_repo.remove_leader.assert_called_once_with(1, 10)
        mock_membership_repo.add_member.assert_not_called()
        mock_membership_repo.remove_member.assert_not_called()
        mock_group_service.is_full.assert_not_called()

    def test_add_leader_does_not_require_membership(self, membership_service: MembershipService, mock_membership_repo: MagicMock):
        mock_membership_repo.has_member.return_value = False

        membership_service.add_leader(10, 1)

        mock_membership_repo.add_leader.assert_called_once_with(1, 10)

    def test_add_leader_unknown_user(self, membership_service: MembershipService, mock_user_repo: MagicMock, mock_membership_repo: MagicMock):
        mock_user_repo.find_by_id.return_value = None

        with pytest.raises(UserNotFoundError):
            membership_service.add_leader(404, 1)
        mock_membership_repo.add_leader.assert_not_called()

# ===================================================================
#  권한 참조 해석 및 부여 테스트
# ===================================================================
class TestPermissionGrants:
    def test_resolve_by_id(self, membership_service: MembershipService, mock_permission_service: MagicMock):
        permission = make_permission(3, "posts.edit")
        mock_permission_service.find_by_id.return_value = permission

        assert membership_service.resolve_permission(ById(3)) is permission

    def test_resolve_by_handle_uses_search(self, membership_service: MembershipService, mock_permission_service: MagicMock):
        permission = make_permission(3, "posts.edit")
        mock_permission_service.search.return_value = permission

        assert membership_service.resolve_permission(ByHandle("posts.edit")) is permission
        mock_permission_service.search.assert_called_once_with("posts.edit")

    def test_resolve_by_value_skips_lookup(self, membership_service: MembershipService, mock_permission_service: MagicMock):
        permission = make_permission(3, "posts.edit")

        assert membership_service.resolve_permission(ByValue(permission)) is permission
        assert mock_permission_service.method_calls == []

    @pytest.mark.parametrize("ref", [ById(99), ByHandle("missing.handle")])
    def test_unresolvable_reference(self, membership_service: MembershipService, mock_permission_service: MagicMock, mock_membership_repo: MagicMock, ref):
        mock_permission_service.find_by_id.return_value = None
        mock_permission_service.search.return_value = None

        with pytest.raises(PermissionNotFoundError):
            membership_service.grant_permission(1, ref)
        mock_membership_repo.grant_to_group.assert_not_called()

    def test_grant_and_revoke_group_permission(self, membership_service: MembershipService, mock_membership_repo: MagicMock):
        permission = make_permission(3, "posts.edit")

        membership_service.grant_permission(1, ByValue(permission))
        membership_service.revoke_permission(1, ByValue(permission))

        mock_membership_repo.grant_to_group.assert_called_once_with(1, 3)
        mock_membership_repo.revoke_from_group.assert_called_once_with(1, 3)

    def test_grant_user_permission(self, membership_service: MembershipService, mock_membership_repo: MagicMock):
        membership_service.grant_user_permission(10, ByValue(make_permission(4, "reports.view")))

        mock_membership_repo.grant_to_user.assert_called_once_with(10, 4)

    def test_batch_grant_is_best_effort(self, membership_service: MembershipService, mock_permission_service: MagicMock, mock_membership_repo: MagicMock):
        """
        일괄 부여는 실패한 항목을 모으고 나머지 항목을 계속 처리합니다.
        앞서 성공한 항목은 되돌리지 않습니다.
        """
        # === Arrange ===
        view = make_permission(1, "posts.view")
        edit = make_permission(2, "posts.edit")
        mock_permission_service.find_by_id.side_effect = lambda pid: view if pid == 1 else None
        mock_permission_service.search.side_effect = lambda term: edit if term == "posts.edit" else None

        # === Act === (int, 없는 핸들, str, Permission 모델, 지원하지 않는 타입)
        result = membership_service.grant_permissions(1, [1, "nope", "posts.edit", view, 3.5])

        # === Assert ===
        assert isinstance(result, BatchResult)
        assert result.applied == ["posts.view", "posts.edit", "posts.view"]
        assert len(result.errors) == 2
        assert isinstance(result.errors[0], PermissionNotFoundError)
        assert isinstance(result.errors[1], TypeError)
        assert result.ok is False
        assert mock_membership_repo.grant_to_group.call_args_list == [call(1, 1), call(1, 2), call(1, 1)]
        mock_membership_repo.revoke_from_group.assert_not_called()

    def test_batch_propagates_store_errors(self, membership_service: MembershipService, mock_permission_service: MagicMock, mock_membership_repo: MagicMock):
        """저장소 오류는 errors에 모이지 않고 전파되며, 앞서 부여된 항목은 유지되고 남은 항목은 처리되지 않습니다."""
        # === Arrange ===
        handles = {"posts.view": 1, "posts.edit": 2, "posts.delete": 3}
        mock_permission_service.search.side_effect = lambda term: make_permission(handles[term], term)
        mock_membership_repo.grant_to_group.side_effect = [None, RuntimeError("database is locked")]

        # === Act & Assert ===
        with pytest.raises(RuntimeError):
            membership_service.grant_permissions(1, ["posts.view", "posts.edit", "posts.delete"])
        assert mock_membership_repo.grant_to_group.call_args_list == [call(1, 1), call(1, 2)]
        mock_membership_repo.revoke_from_group.assert_not_called()

    def test_batch_lose_permissions(self, membership_service: MembershipService, mock_permission_service: MagicMock, mock_membership_repo: MagicMock):
        mock_permission_service.search.return_value = make_permission(2, "posts.edit")

        result = membership_service.lose_permissions(1, ["posts.edit"])

        assert result.ok
        mock_membership_repo.revoke_from_group.assert_called_once_with(1, 2)

    def test_batch_on_unknown_group_raises_immediately(self, membership_service: MembershipService, mock_group_service: MagicMock, mock_membership_repo: MagicMock):
        mock_group_service.get_or_raise.side_effect = GroupNotFoundError("nope")

        with pytest.raises(GroupNotFoundError):
            membership_service.grant_permissions(404, ["posts.edit"])
        mock_membership_repo.grant_to_group.assert_not_called()

    def test_permission_handles_for(self, membership_service: MembershipService, mock_membership_repo: MagicMock):
        mock_membership_repo.list_user_permission_handles.return_value = ["reports.view"]
        mock_membership_repo.list_group_permission_handles_for_user.return_value = ["reports.edit"]

        assert membership_service.permission_handles_for(10) == (["reports.view"], ["reports.edit"])
