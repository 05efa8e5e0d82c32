import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from membership import config
from membership.services.membership_service import MembershipService
from membership.services.permission_service import PermissionService

logger = logging.getLogger(__name__)

# (gate, user, resource, owner_field) -> bool
Predicate = Callable[['Gate', Any, Any, Optional[str]], bool]
# (user, resource, owner_field, held_directly, held_via_group) -> bool
OwnershipPolicy = Callable[[Any, Any, str, bool, bool], bool]


def resource_owner(resource, owner_field: str):
    """리소스가 매핑이면 키로, 아니면 속성으로 소유자 값을 꺼냅니다."""
    if isinstance(resource, dict):
        return resource.get(owner_field)
    return getattr(resource, owner_field, None)


def default_ownership_policy(user, resource, owner_field: str, held_directly: bool, held_via_group: bool) -> bool:
    """
    그룹을 통해 받은 권한은 모든 리소스에 적용됩니다.
    직접 받은 권한은 사용자가 소유한 리소스에만 적용됩니다.
    """
    if held_via_group:
        return True
    return held_directly and resource_owner(resource, owner_field) == user.id


def handle_matches(held: str, requested: str, separator: str = config.PERMISSIONS_HANDLE_SEPARATOR) -> bool:
    """
    보유한 핸들이 요청된 핸들을 만족하는지 확인합니다.
    'posts.*'처럼 구분자 + '*'로 끝나는 핸들은 그 접두사 아래의 모든 핸들을 만족합니다.
    """
    if held == requested:
        return True
    wildcard = separator + '*'
    if held.endswith(wildcard):
        return requested.startswith(held[:-1])
    return False


class PolicyRegistry:
    """
    권한 핸들 -> 검사 함수(predicate)의 명시적 매핑입니다.
    프로세스 시작 시 권한 저장소의 스냅샷으로 한 번 구성합니다.
    """

    def __init__(self):
        self._policies: Dict[str, Predicate] = {}

    def define(self, handle: str, predicate: Predicate) -> None:
        self._policies[handle] = predicate

    def get(self, handle: str) -> Optional[Predicate]:
        return self._policies.get(handle)

    def abilities(self) -> List[str]:
        return sorted(self._policies)

    def register_handles(self, handles: Iterable[str]) -> int:
        """각 핸들에 대해 Gate.check를 호출하는 기본 검사 함수를 등록합니다."""
        count = 0
        for handle in handles:
            self.define(handle, _permission_predicate(handle))
            count += 1
        return count

    def register_from(self, permission_service: PermissionService) -> int:
        """
        권한 저장소의 모든 핸들을 등록합니다.
        권한 테이블이 아직 생성되지 않았다면(마이그레이션 이전) 조용히 건너뜁니다.

        Returns:
            등록된 핸들의 수.
        """
        if not permission_service.is_provisioned():
            logger.debug("Permissions table is not provisioned yet; skipping policy registration.")
            return 0
        count = self.register_handles(permission_service.list_handles())
        logger.info("Registered %d permission policies.", count)
        return count


def _permission_predicate(handle: str) -> Predicate:
    def predicate(gate: 'Gate', user, resource=None, owner_field: Optional[str] = None) -> bool:
        return gate.check(user, handle, resource, owner_field)
    return predicate


class Gate:
    """
    "사용자 U가 권한 P를 (리소스 R에 대해) 가지고 있는가?"를 판단하는 단일 결정 지점입니다.
    현재 사용자는 항상 인자로 전달되며, 전역 인증 상태를 사용하지 않습니다.
    """

    def __init__(self, membership_service: MembershipService, registry: Optional[PolicyRegistry] = None,
                 ownership_policy: OwnershipPolicy = default_ownership_policy,
                 separator: str = config.PERMISSIONS_HANDLE_SEPARATOR):
        """
        Gate를 초기화합니다.

        Args:
            membership_service: 사용자의 직접/그룹 권한을 조회하기 위한 서비스.
            registry: 핸들별 검사 함수 매핑. allows()에서 사용합니다.
            ownership_policy: 리소스가 주어졌을 때 호출되는 소유권 검사 훅.
            separator: 와일드카드 핸들 해석에 쓰이는 권한 핸들 구분자.
        """
        self.membership_service = membership_service
        self.registry = registry or PolicyRegistry()
        self.ownership_policy = ownership_policy
        self.separator = separator

    def check(self, user, permission_code: str, resource=None, owner_field: Optional[str] = None) -> bool:
        """
        사용자가 권한을 직접 또는 소속 그룹을 통해 가지고 있는지 확인합니다.

        resource와 owner_field가 함께 주어지면 최종 판단은 ownership_policy에 위임합니다.

        Args:
            user: id 속성을 가진 사용자 객체. None이면(게스트) 항상 False.
            permission_code: 검사할 권한 핸들.
            resource: 선택. 검사 대상 리소스(매핑 또는 객체).
            owner_field: 선택. 리소스에서 소유자 ID를 담은 필드 이름.
        """
        if user is None:
            return False

        direct, via_groups = self.membership_service.permission_handles_for(user.id)
        held_directly = any(handle_matches(h, permission_code, self.separator) for h in direct)
        held_via_group = any(handle_matches(h, permission_code, self.separator) for h in via_groups)

        if resource is not None and owner_field:
            allowed = self.ownership_policy(user, resource, owner_field, held_directly, held_via_group)
        else:
            allowed = held_directly or held_via_group

        if not allowed:
            logger.debug("Denied '%s' for user %s.", permission_code, user.id)
        return allowed

    def allows(self, handle: str, user, resource=None, owner_field: str = 'user_id') -> bool:
        """등록된 검사 함수로 판단합니다. 등록되지 않은 핸들은 거부합니다."""
        predicate = self.registry.get(handle)
        if predicate is None:
            logger.debug("No policy registered for '%s'.", handle)
            return False
        return predicate(self, user, resource, owner_field)

    def denies(self, handle: str, user, resource=None, owner_field: str = 'user_id') -> bool:
        return not self.allows(handle, user, resource, owner_field)

    def abilities(self) -> List[str]:
        return self.registry.abilities()


class AuthContext:
    """요청마다 명시적으로 전달되는 현재 사용자 컨텍스트입니다."""

    def __init__(self, user=None):
        self._user = user

    def is_logged_in(self) -> bool:
        return self._user is not None

    def is_guest(self) -> bool:
        return not self.is_logged_in()

    def user(self, attribute: Optional[str] = None):
        """현재 사용자 또는 그 속성 값을 반환합니다. 게스트이면 None."""
        if self.is_guest():
            return None
        if attribute:
            return getattr(self._user, attribute)
        return self._user
