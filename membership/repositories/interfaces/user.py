from abc import ABC, abstractmethod
from typing import Optional
from membership.database import models

class IUserRepository(ABC):
    @abstractmethod
    def create(self, user_model: models.User) -> models.User:
        """새로운 사용자를 데이터베이스에 생성합니다."""
        pass

    @abstractmethod
    def find_by_id(self, user_id: int) -> Optional[models.User]:
        """고유 ID로 특정 사용자를 조회합니다."""
        pass

    @abstractmethod
    def set_primary_group(self, user: models.User, group_id: Optional[int]) -> models.User:
        """사용자의 주 그룹 ID를 변경하고 저장합니다."""
        pass
