import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

from membership import config
from membership.database import models
from membership.repositories.interfaces import IUserRepository, IMembershipRepository
from membership.services.group_service import GroupService
from membership.services.permission_service import PermissionService
from membership.services.references import ById, ByHandle, ByValue, PermissionRef, as_permission_ref
from membership.services.exceptions import (
    GroupFullError, PermissionNotFoundError, UserNotFoundError
)

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """일괄 권한 부여/회수 결과. 실패한 항목은 errors에 모이고 나머지 항목은 계속 처리됩니다."""
    applied: List[str] = field(default_factory=list)
    errors: List[Exception] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class MembershipService:
    """
    사용자-그룹 멤버십, 그룹 리더, 그룹/사용자 권한 부여를 관리하는 원장(ledger) 서비스입니다.

    모든 조인 테이블 변경은 멱등이며, 각 리포지토리 호출은 개별적으로 커밋됩니다.
    """

    def __init__(self, user_repo: IUserRepository, membership_repo: IMembershipRepository,
                 group_service: GroupService, permission_service: PermissionService,
                 default_group_id: int = config.DEFAULT_GROUP_ID):
        """
        MembershipService를 초기화합니다.

        Args:
            user_repo: 사용자 조회 및 주 그룹 변경을 위한 리포지토리.
            membership_repo: 조인 테이블에 접근하기 위한 리포지토리.
            group_service: 그룹 참조 검증과 인원 제한 확인에 사용.
            permission_service: 권한 참조 해석에 사용.
            default_group_id: assign_default_group에서 사용할 기본 그룹 ID.
        """
        self.user_repo = user_repo
        self.membership_repo = membership_repo
        self.group_service = group_service
        self.permission_service = permission_service
        self.default_group_id = default_group_id

    # ------------------------------------------------------------------
    # 멤버십
    # ------------------------------------------------------------------

    def assign(self, user_id: int, group_id: int, make_primary: bool = False) -> bool:
        """
        사용자를 그룹에 배정합니다. 이미 멤버라면 아무 일도 일어나지 않습니다.

        인원 제한 확인과 삽입은 원자적이지 않습니다. 동시에 들어온 두 요청이 모두
        확인을 통과하면 limit을 초과할 수 있습니다. (soft limit)

        make_primary가 True이면 멤버십을 먼저 커밋한 뒤 사용자의 주 그룹을 변경합니다.
        두 번째 단계가 실패해도 이미 커밋된 멤버십은 롤백되지 않습니다.

        Raises:
            UserNotFoundError: 해당 ID의 사용자를 찾을 수 없을 때.
            GroupNotFoundError: 해당 ID의 그룹을 찾을 수 없을 때.
            GroupFullError: 그룹의 인원 제한에 도달했을 때.
        """
        user = self.get_user_or_raise(user_id)
        group = self.group_service.get_or_raise(group_id)

        if self.group_service.is_full(group):
            logger.warning("Group '%s' is full (limit=%s); user %s not assigned.", group.handle, group.limit, user_id)
            raise GroupFullError(f"Group '{group.handle}' has reached its limit of {group.limit} member(s).")

        self.membership_repo.add_member(group.id, user.id)
        logger.info("User %s assigned to group '%s'.", user.id, group.handle)

        if make_primary:
            self.user_repo.set_primary_group(user, group.id)
            logger.info("Primary group of user %s set to '%s'.", user.id, group.handle)
        return True

    def assign_default_group(self, user_id: int) -> bool:
        """사용자를 설정된 기본 그룹에 배정하고 주 그룹으로 지정합니다."""
        return self.assign(user_id, self.default_group_id, make_primary=True)

    def retract(self, user_id: int, group_id: int) -> None:
        """
        사용자를 그룹에서 제외합니다. 멤버가 아니어도 오류가 발생하지 않습니다.
        사용자의 primary_group_id가 이 그룹을 가리키더라도 변경하지 않습니다.

        Raises:
            GroupNotFoundError: 해당 ID의 그룹을 찾을 수 없을 때.
        """
        group = self.group_service.get_or_raise(group_id)
        self.membership_repo.remove_member(group.id, user_id)
        logger.info("User %s retracted from group '%s'.", user_id, group.handle)

    def has_member(self, group_id: int, user_id: int) -> bool:
        return self.membership_repo.has_member(group_id, user_id)

    def list_group_ids(self, user_id: int) -> List[int]:
        """사용자가 속한 그룹 ID 목록을 반환합니다."""
        return self.membership_repo.list_group_ids_for_user(user_id)

    # ------------------------------------------------------------------
    # 리더 (멤버십과 독립적이며 인원 제한에 포함되지 않음)
    # ------------------------------------------------------------------

    def add_leader(self, user_id: int, group_id: int) -> None:
        """
        Raises:
            UserNotFoundError: 해당 ID의 사용자를 찾을 수 없을 때.
            GroupNotFoundError: 해당 ID의 그룹을 찾을 수 없을 때.
        """
        user = self.get_user_or_raise(user_id)
        group = self.group_service.get_or_raise(group_id)
        self.membership_repo.add_leader(group.id, user.id)
        logger.info("User %s added as leader of group '%s'.", user.id, group.handle)

    def remove_leader(self, user_id: int, group_id: int) -> None:
        group = self.group_service.get_or_raise(group_id)
        self.membership_repo.remove_leader(group.id, user_id)
        logger.info("User %s removed as leader of group '%s'.", user_id, group.handle)

    def has_leader(self, group_id: int, user_id: int) -> bool:
        return self.membership_repo.has_leader(group_id, user_id)

    # ------------------------------------------------------------------
    # 그룹 권한 부여
    # ------------------------------------------------------------------

    def grant_permission(self, group_id: int, ref: PermissionRef) -> models.Permission:
        """
        그룹에 권한을 부여합니다. 이미 부여된 권한이면 아무 일도 일어나지 않습니다.

        Raises:
            GroupNotFoundError: 해당 ID의 그룹을 찾을 수 없을 때.
            PermissionNotFoundError: 권한 참조를 해석할 수 없을 때.
        """
        group = self.group_service.get_or_raise(group_id)
        permission = self.resolve_permission(ref)
        self.membership_repo.grant_to_group(group.id, permission.id)
        logger.info("Permission '%s' granted to group '%s'.", permission.handle, group.handle)
        return permission

    def revoke_permission(self, group_id: int, ref: PermissionRef) -> models.Permission:
        """
        그룹의 권한을 회수합니다. 부여되지 않은 권한이어도 오류가 발생하지 않습니다.

        Raises:
            GroupNotFoundError: 해당 ID의 그룹을 찾을 수 없을 때.
            PermissionNotFoundError: 권한 참조를 해석할 수 없을 때.
        """
        group = self.group_service.get_or_raise(group_id)
        permission = self.resolve_permission(ref)
        self.membership_repo.revoke_from_group(group.id, permission.id)
        logger.info("Permission '%s' revoked from group '%s'.", permission.handle, group.handle)
        return permission

    def grant_permissions(self, group_id: int, refs: Iterable) -> BatchResult:
        """
        여러 권한을 그룹에 부여합니다. (best-effort)

        각 항목은 독립적으로 처리됩니다. 한 항목이 실패해도 앞서 처리된 항목은
        되돌리지 않으며 남은 항목도 계속 처리합니다. 그룹이 없으면 즉시 예외가 발생합니다.
        저장소 오류는 수집 대상이 아니며 즉시 전파됩니다. (_apply_batch 참고)
        """
        group = self.group_service.get_or_raise(group_id)
        return self._apply_batch(refs, lambda ref: self.grant_permission(group.id, ref))

    def lose_permissions(self, group_id: int, refs: Iterable) -> BatchResult:
        """여러 권한을 그룹에서 회수합니다. 처리 방식은 grant_permissions와 같습니다."""
        group = self.group_service.get_or_raise(group_id)
        return self._apply_batch(refs, lambda ref: self.revoke_permission(group.id, ref))

    # ------------------------------------------------------------------
    # 사용자 직접 권한 부여
    # ------------------------------------------------------------------

    def grant_user_permission(self, user_id: int, ref: PermissionRef) -> models.Permission:
        """
        Raises:
            UserNotFoundError: 해당 ID의 사용자를 찾을 수 없을 때.
            PermissionNotFoundError: 권한 참조를 해석할 수 없을 때.
        """
        user = self.get_user_or_raise(user_id)
        permission = self.resolve_permission(ref)
        self.membership_repo.grant_to_user(user.id, permission.id)
        logger.info("Permission '%s' granted to user %s.", permission.handle, user.id)
        return permission

    def revoke_user_permission(self, user_id: int, ref: PermissionRef) -> models.Permission:
        user = self.get_user_or_raise(user_id)
        permission = self.resolve_permission(ref)
        self.membership_repo.revoke_from_user(user.id, permission.id)
        logger.info("Permission '%s' revoked from user %s.", permission.handle, user.id)
        return permission

    def permission_handles_for(self, user_id: int) -> Tuple[List[str], List[str]]:
        """사용자가 가진 권한 핸들을 (직접 부여, 그룹을 통한 부여) 튜플로 반환합니다."""
        direct = self.membership_repo.list_user_permission_handles(user_id)
        via_groups = self.membership_repo.list_group_permission_handles_for_user(user_id)
        return direct, via_groups

    # ------------------------------------------------------------------
    # 내부 헬퍼
    # ------------------------------------------------------------------

    def resolve_permission(self, ref: PermissionRef) -> models.Permission:
        """
        권한 참조를 Permission 모델로 해석합니다.

        Raises:
            PermissionNotFoundError: ID나 핸들/이름에 해당하는 권한이 없을 때.
        """
        if isinstance(ref, ByValue):
            return ref.permission
        if isinstance(ref, ById):
            permission = self.permission_service.find_by_id(ref.id)
            if not permission:
                raise PermissionNotFoundError(f"Permission with id '{ref.id}' not found.")
            return permission
        if isinstance(ref, ByHandle):
            permission = self.permission_service.search(ref.handle)
            if not permission:
                raise PermissionNotFoundError(f"Permission '{ref.handle}' not found.")
            return permission
        raise TypeError(f"Unsupported permission reference: {ref!r}")

    def _apply_batch(self, refs: Iterable, action) -> BatchResult:
        """
        참조 해석 실패(PermissionNotFoundError)와 지원하지 않는 참조 타입(TypeError)만 errors에 모읍니다.
        저장소 오류는 수집하지 않고 그대로 전파되며, 이 경우 남은 항목은 처리되지 않습니다.
        이미 처리된 항목은 되돌리지 않습니다.
        """
        result = BatchResult()
        for raw in refs:
            try:
                permission = action(as_permission_ref(raw))
            except (PermissionNotFoundError, TypeError) as e:
                logger.warning("Skipping permission reference %r: %s", raw, e)
                result.errors.append(e)
            else:
                result.applied.append(permission.handle)
        return result

    def get_user_or_raise(self, user_id: int) -> models.User:
        user = self.user_repo.find_by_id(user_id)
        if not user:
            raise UserNotFoundError(f"User with id '{user_id}' not found.")
        return user
