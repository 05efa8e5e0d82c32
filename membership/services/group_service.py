import logging
from typing import Dict, Any, List, Optional

from sqlalchemy.exc import IntegrityError

from membership import config
from membership.database import models
from membership.repositories.interfaces import IGroupRepository, IMembershipRepository
from membership.services.exceptions import DuplicateHandleError, GroupNotFoundError
from membership.utils.handle_generator import HandleGenerator

logger = logging.getLogger(__name__)

# update_group으로 변경할 수 있는 필드
UPDATABLE_FIELDS = ('name', 'handle', 'open_tag', 'close_tag', 'limit', 'public')


def group_to_dict(group: models.Group) -> Dict[str, Any]:
    return {
        "id": group.id,
        "name": group.name,
        "handle": group.handle,
        "open_tag": group.open_tag,
        "close_tag": group.close_tag,
        "limit": group.limit,
        "public": group.public,
        "formatted_name": group.formatted_name,
    }


class GroupService:
    """그룹의 생성, 조회, 수정, 삭제와 인원 제한 및 표시 이름 포맷을 제공합니다."""

    def __init__(self, group_repo: IGroupRepository, membership_repo: IMembershipRepository,
                 separator: str = config.GROUPS_HANDLE_SEPARATOR, per_page: int = config.GROUPS_PER_PAGE):
        """
        GroupService를 초기화합니다.

        Args:
            group_repo: 그룹 데이터에 접근하기 위한 리포지토리.
            membership_repo: 현재 멤버 수를 세기 위한 리포지토리.
            separator: 자동 생성 핸들에 쓰일 구분자. 생성 시점에 검증됩니다.
            per_page: 목록 조회 시 한 페이지의 크기.
        """
        self.group_repo = group_repo
        self.membership_repo = membership_repo
        self.make_handle = HandleGenerator(separator)
        self.per_page = per_page

    def create_group(self, name: str, handle: Optional[str] = None, open_tag: str = '', close_tag: str = '',
                     limit: int = 0, public: bool = False) -> Dict[str, Any]:
        """
        새로운 그룹을 생성합니다. 핸들이 주어지지 않으면 이름으로부터 생성합니다.

        Args:
            name: 그룹 이름.
            handle: 고유 핸들. 생략 시 이름으로부터 생성.
            open_tag: 표시 이름 앞에 붙일 문자열.
            close_tag: 표시 이름 뒤에 붙일 문자열.
            limit: 최대 멤버 수. 0이면 제한 없음.
            public: 공개 그룹 여부.

        Raises:
            ValueError: 이름/핸들이 비어 있거나 limit이 음수일 때.
            DuplicateHandleError: 동일한 핸들의 그룹이 이미 존재할 때.
        """
        handle = handle or self.make_handle(name)
        if not name or not handle:
            raise ValueError("Group name and handle must not be empty.")
        if limit < 0:
            raise ValueError("Group limit must be zero (unlimited) or positive.")
        if self.group_repo.find_by_handle(handle):
            raise DuplicateHandleError(f"Group with handle '{handle}' already exists.")

        try:
            group = self.group_repo.create(models.Group(
                name=name, handle=handle, open_tag=open_tag, close_tag=close_tag, limit=limit, public=public
            ))
        except IntegrityError as e:
            # 중복 확인 이후 다른 요청이 같은 핸들을 먼저 저장한 경우 (고유 인덱스 위반)
            raise DuplicateHandleError(f"Group with handle '{handle}' already exists.") from e
        logger.info("Group '%s' created (id=%s, limit=%s).", group.handle, group.id, group.limit)
        return group_to_dict(group)

    def find_by_id(self, group_id: int) -> Optional[models.Group]:
        return self.group_repo.find_by_id(group_id)

    def get_group(self, group_id: int) -> Dict[str, Any]:
        """
        ID로 특정 그룹을 조회합니다.

        Raises:
            GroupNotFoundError: 해당 ID의 그룹을 찾을 수 없을 때.
        """
        return group_to_dict(self.get_or_raise(group_id))

    def list_groups(self, page: int = 1, public_only: bool = False) -> List[Dict[str, Any]]:
        """이름 순으로 정렬된 그룹 목록의 한 페이지를 조회합니다. (page는 1부터 시작)"""
        offset = (max(page, 1) - 1) * self.per_page
        groups = self.group_repo.list_page(offset, self.per_page, public_only=public_only)
        return [group_to_dict(g) for g in groups]

    def update_group(self, group_id: int, **fields) -> Dict[str, Any]:
        """
        그룹 정보를 변경합니다. UPDATABLE_FIELDS에 속한 필드만 변경할 수 있습니다.

        Raises:
            GroupNotFoundError: 해당 ID의 그룹을 찾을 수 없을 때.
            DuplicateHandleError: 변경하려는 핸들을 다른 그룹이 사용 중일 때.
            ValueError: 알 수 없는 필드이거나, 이름/핸들을 빈 값으로 바꾸려 하거나, limit이 음수일 때.
        """
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown group field(s): {', '.join(sorted(unknown))}")
        if fields.get('name') == '' or fields.get('handle') == '':
            raise ValueError("Group name and handle must not be empty.")

        group = self.get_or_raise(group_id)
        handle = fields.get('handle')
        if handle is not None and handle != group.handle:
            existing = self.group_repo.find_by_handle(handle)
            if existing and existing.id != group.id:
                raise DuplicateHandleError(f"Group with handle '{handle}' already exists.")
        if fields.get('limit') is not None and fields['limit'] < 0:
            raise ValueError("Group limit must be zero (unlimited) or positive.")

        for field, value in fields.items():
            if value is not None:
                setattr(group, field, value)
        try:
            group = self.group_repo.update(group)
        except IntegrityError as e:
            raise DuplicateHandleError(f"Group with handle '{handle}' already exists.") from e
        logger.info("Group %s updated: %s", group.id, ', '.join(sorted(fields)))
        return group_to_dict(group)

    def delete_group(self, group_id: int) -> bool:
        """
        그룹을 삭제합니다.
        멤버십, 리더, 권한 부여 레코드와 사용자의 primary_group_id는 정리하지 않습니다.

        Raises:
            GroupNotFoundError: 해당 ID의 그룹을 찾을 수 없을 때.
        """
        group = self.get_or_raise(group_id)
        self.group_repo.delete(group)
        logger.info("Group '%s' deleted.", group.handle)
        return True

    def get_formatted_name(self, group_id: int) -> str:
        """태그로 감싼 그룹의 표시 이름(open_tag + name + close_tag)을 반환합니다."""
        return self.get_or_raise(group_id).formatted_name

    def limit_exceeded(self, group_id: int) -> bool:
        """
        그룹의 인원 제한에 도달했는지 확인합니다. limit이 0이면 항상 False입니다.

        Raises:
            GroupNotFoundError: 해당 ID의 그룹을 찾을 수 없을 때.
        """
        return self.is_full(self.get_or_raise(group_id))

    def is_full(self, group: models.Group) -> bool:
        if not group.limit:
            return False
        return self.membership_repo.count_members(group.id) >= group.limit

    def get_or_raise(self, group_id: int) -> models.Group:
        group = self.group_repo.find_by_id(group_id)
        if not group:
            raise GroupNotFoundError(f"Group with id '{group_id}' not found.")
        return group
