from dataclasses import dataclass
from typing import Union

from membership.database import models


@dataclass(frozen=True)
class ById:
    id: int


@dataclass(frozen=True)
class ByHandle:
    # 핸들 또는 이름. PermissionService.search로 해석됩니다.
    handle: str


@dataclass(frozen=True)
class ByValue:
    permission: models.Permission


PermissionRef = Union[ById, ByHandle, ByValue]


def as_permission_ref(value) -> PermissionRef:
    """
    JSON 요청 본문 등에서 넘어온 원시 값을 권한 참조로 변환합니다.
    int는 ById, str은 ByHandle, Permission 모델은 ByValue가 됩니다.

    Raises:
        TypeError: 지원하지 않는 타입일 때.
    """
    if isinstance(value, (ById, ByHandle, ByValue)):
        return value
    # bool은 int의 하위 타입이므로 먼저 걸러냅니다.
    if isinstance(value, bool):
        raise TypeError(f"Unsupported permission reference: {value!r}")
    if isinstance(value, int):
        return ById(value)
    if isinstance(value, str):
        return ByHandle(value)
    if isinstance(value, models.Permission):
        return ByValue(value)
    raise TypeError(f"Unsupported permission reference: {value!r}")
