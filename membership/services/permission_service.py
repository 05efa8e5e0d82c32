import logging
from typing import Dict, Any, List, Optional

from sqlalchemy.exc import IntegrityError

from membership import config
from membership.database import models
from membership.repositories.interfaces import IPermissionRepository, IMembershipRepository
from membership.services.exceptions import (
    DuplicateHandleError, PermissionNotFoundError, PermissionInUseError
)
from membership.utils.handle_generator import HandleGenerator

logger = logging.getLogger(__name__)


def permission_to_dict(permission: models.Permission) -> Dict[str, Any]:
    return {
        "id": permission.id,
        "name": permission.name,
        "handle": permission.handle,
        "type": permission.type,
    }


class PermissionService:
    """권한(Permission)의 생성, 조회, 수정, 삭제와 핸들 기반 검색을 제공합니다."""

    def __init__(self, permission_repo: IPermissionRepository, membership_repo: IMembershipRepository,
                 separator: str = config.PERMISSIONS_HANDLE_SEPARATOR, per_page: int = config.PERMISSIONS_PER_PAGE):
        """
        PermissionService를 초기화합니다.

        Args:
            permission_repo: 권한 데이터에 접근하기 위한 리포지토리.
            membership_repo: 권한 삭제 전 참조 여부를 확인하기 위한 리포지토리.
            separator: 자동 생성 핸들에 쓰일 구분자. 생성 시점에 검증됩니다.
            per_page: 목록 조회 시 한 페이지의 크기.
        """
        self.permission_repo = permission_repo
        self.membership_repo = membership_repo
        self.make_handle = HandleGenerator(separator)
        self.per_page = per_page

    def create_permission(self, name: str, type: str, handle: Optional[str] = None) -> Dict[str, Any]:
        """
        새로운 권한을 생성합니다. 핸들이 주어지지 않으면 이름으로부터 생성합니다.

        Raises:
            ValueError: 이름이나 생성된 핸들이 비어 있을 때.
            DuplicateHandleError: 동일한 핸들의 권한이 이미 존재할 때.
        """
        handle = handle or self.make_handle(name)
        if not name or not handle:
            raise ValueError("Permission name and handle must not be empty.")
        if self.permission_repo.find_by_handle(handle):
            raise DuplicateHandleError(f"Permission with handle '{handle}' already exists.")

        try:
            permission = self.permission_repo.create(models.Permission(name=name, handle=handle, type=type))
        except IntegrityError as e:
            # 중복 확인 이후 다른 요청이 같은 핸들을 먼저 저장한 경우 (고유 인덱스 위반)
            raise DuplicateHandleError(f"Permission with handle '{handle}' already exists.") from e
        logger.info("Permission '%s' created (id=%s).", permission.handle, permission.id)
        return permission_to_dict(permission)

    def find_by_handle(self, handle: str) -> Optional[models.Permission]:
        """핸들이 정확히 일치하는 권한을 반환합니다. 와일드카드 확장은 하지 않습니다."""
        return self.permission_repo.find_by_handle(handle)

    def search(self, term: str) -> Optional[models.Permission]:
        """핸들, 그다음 이름 순서로 검색하여 처음 일치하는 권한을 반환합니다."""
        return self.permission_repo.find_by_handle(term) or self.permission_repo.find_by_name(term)

    def find_by_id(self, permission_id: int) -> Optional[models.Permission]:
        return self.permission_repo.find_by_id(permission_id)

    def get_permission(self, permission_id: int) -> Dict[str, Any]:
        """
        ID로 특정 권한을 조회합니다.

        Raises:
            PermissionNotFoundError: 해당 ID의 권한을 찾을 수 없을 때.
        """
        return permission_to_dict(self._get_or_raise(permission_id))

    def list_permissions(self, page: int = 1) -> List[Dict[str, Any]]:
        """핸들 순으로 정렬된 권한 목록의 한 페이지를 조회합니다. (page는 1부터 시작)"""
        offset = (max(page, 1) - 1) * self.per_page
        return [permission_to_dict(p) for p in self.permission_repo.list_page(offset, self.per_page)]

    def list_handles(self) -> List[str]:
        """현재 저장된 모든 권한 핸들의 스냅샷을 반환합니다."""
        return [p.handle for p in self.permission_repo.list_all()]

    def is_provisioned(self) -> bool:
        return self.permission_repo.is_provisioned()

    def update_permission(self, permission_id: int, name: Optional[str] = None,
                          handle: Optional[str] = None, type: Optional[str] = None) -> Dict[str, Any]:
        """
        권한의 이름, 핸들, 유형을 변경합니다. 주어진 값만 변경됩니다.

        Raises:
            PermissionNotFoundError: 해당 ID의 권한을 찾을 수 없을 때.
            DuplicateHandleError: 변경하려는 핸들을 다른 권한이 사용 중일 때.
            ValueError: 이름이나 핸들을 빈 값으로 바꾸려 할 때.
        """
        if name == '' or handle == '':
            raise ValueError("Permission name and handle must not be empty.")
        permission = self._get_or_raise(permission_id)
        if handle is not None and handle != permission.handle:
            existing = self.permission_repo.find_by_handle(handle)
            if existing and existing.id != permission.id:
                raise DuplicateHandleError(f"Permission with handle '{handle}' already exists.")
            permission.handle = handle
        if name is not None:
            permission.name = name
        if type is not None:
            permission.type = type

        try:
            permission = self.permission_repo.update(permission)
        except IntegrityError as e:
            raise DuplicateHandleError(f"Permission with handle '{handle}' already exists.") from e
        logger.info("Permission %s updated.", permission.id)
        return permission_to_dict(permission)

    def delete_permission(self, permission_id: int) -> bool:
        """
        권한을 삭제합니다. 그룹이나 사용자에게 부여된 권한은 삭제할 수 없습니다.

        Raises:
            PermissionNotFoundError: 해당 ID의 권한을 찾을 수 없을 때.
            PermissionInUseError: 권한을 참조하는 부여 레코드가 하나 이상 존재할 때.
        """
        permission = self._get_or_raise(permission_id)
        references = self.membership_repo.count_permission_references(permission_id)
        if references > 0:
            raise PermissionInUseError(
                f"Permission '{permission.handle}' is granted {references} time(s) and cannot be deleted."
            )
        self.permission_repo.delete(permission)
        logger.info("Permission '%s' deleted.", permission.handle)
        return True

    def _get_or_raise(self, permission_id: int) -> models.Permission:
        permission = self.permission_repo.find_by_id(permission_id)
        if not permission:
            raise PermissionNotFoundError(f"Permission with id '{permission_id}' not found.")
        return permission
