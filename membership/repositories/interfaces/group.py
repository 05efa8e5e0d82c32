from abc import ABC, abstractmethod
from typing import List, Optional
from membership.database import models

class IGroupRepository(ABC):
    @abstractmethod
    def create(self, group_model: models.Group) -> models.Group:
        """새로운 그룹을 데이터베이스에 생성합니다."""
        pass

    @abstractmethod
    def find_by_id(self, group_id: int) -> Optional[models.Group]:
        """고유 ID로 특정 그룹을 조회합니다."""
        pass

    @abstractmethod
    def find_by_handle(self, handle: str) -> Optional[models.Group]:
        """핸들로 특정 그룹을 조회합니다."""
        pass

    @abstractmethod
    def list_page(self, offset: int, limit: int, public_only: bool = False) -> List[models.Group]:
        """이름 순으로 정렬된 그룹 목록의 한 페이지를 조회합니다."""
        pass

    @abstractmethod
    def update(self, group: models.Group) -> models.Group:
        """변경된 그룹 정보를 저장합니다."""
        pass

    @abstractmethod
    def delete(self, group: models.Group) -> bool:
        """특정 그룹을 데이터베이스에서 삭제합니다. 연관 레코드는 정리하지 않습니다."""
        pass
