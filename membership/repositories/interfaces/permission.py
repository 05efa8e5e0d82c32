from abc import ABC, abstractmethod
from typing import List, Optional
from membership.database import models

class IPermissionRepository(ABC):
    @abstractmethod
    def create(self, permission_model: models.Permission) -> models.Permission:
        """새로운 권한을 데이터베이스에 생성합니다."""
        pass

    @abstractmethod
    def find_by_id(self, permission_id: int) -> Optional[models.Permission]:
        """고유 ID로 특정 권한을 조회합니다."""
        pass

    @abstractmethod
    def find_by_handle(self, handle: str) -> Optional[models.Permission]:
        """핸들이 정확히 일치하는 권한을 조회합니다."""
        pass

    @abstractmethod
    def find_by_name(self, name: str) -> Optional[models.Permission]:
        """이름이 정확히 일치하는 첫 번째 권한을 조회합니다."""
        pass

    @abstractmethod
    def list_page(self, offset: int, limit: int) -> List[models.Permission]:
        """핸들 순으로 정렬된 권한 목록의 한 페이지를 조회합니다."""
        pass

    @abstractmethod
    def list_all(self) -> List[models.Permission]:
        """모든 권한의 목록을 조회합니다."""
        pass

    @abstractmethod
    def update(self, permission: models.Permission) -> models.Permission:
        """변경된 권한 정보를 저장합니다."""
        pass

    @abstractmethod
    def delete(self, permission: models.Permission) -> bool:
        """특정 권한을 데이터베이스에서 삭제합니다."""
        pass

    @abstractmethod
    def is_provisioned(self) -> bool:
        """권한 테이블이 생성되어 있는지 확인합니다. (마이그레이션 이전 호출 대비)"""
        pass
