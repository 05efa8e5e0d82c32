from abc import ABC, abstractmethod
from typing import List

class IMembershipRepository(ABC):
    """
    사용자-그룹, 그룹-리더, 그룹-권한, 사용자-권한 조인 테이블을 다룹니다.
    모든 추가/제거 연산은 멱등(idempotent)입니다. 이미 있는 레코드를 추가하거나
    없는 레코드를 제거해도 오류가 발생하지 않습니다.
    """

    # --- 멤버십 ---
    @abstractmethod
    def add_member(self, group_id: int, user_id: int):
        """사용자를 그룹 멤버로 추가합니다."""
        pass

    @abstractmethod
    def remove_member(self, group_id: int, user_id: int):
        """사용자를 그룹 멤버에서 제거합니다."""
        pass

    @abstractmethod
    def has_member(self, group_id: int, user_id: int) -> bool:
        pass

    @abstractmethod
    def count_members(self, group_id: int) -> int:
        """그룹의 현재 멤버 수를 조회합니다. (리더는 포함하지 않음)"""
        pass

    @abstractmethod
    def list_group_ids_for_user(self, user_id: int) -> List[int]:
        pass

    # --- 리더 ---
    @abstractmethod
    def add_leader(self, group_id: int, user_id: int):
        pass

    @abstractmethod
    def remove_leader(self, group_id: int, user_id: int):
        pass

    @abstractmethod
    def has_leader(self, group_id: int, user_id: int) -> bool:
        pass

    # --- 권한 부여 ---
    @abstractmethod
    def grant_to_group(self, group_id: int, permission_id: int):
        pass

    @abstractmethod
    def revoke_from_group(self, group_id: int, permission_id: int):
        pass

    @abstractmethod
    def grant_to_user(self, user_id: int, permission_id: int):
        pass

    @abstractmethod
    def revoke_from_user(self, user_id: int, permission_id: int):
        pass

    @abstractmethod
    def count_permission_references(self, permission_id: int) -> int:
        """해당 권한을 참조하는 그룹 부여 및 사용자 직접 부여 레코드의 수를 조회합니다."""
        pass

    @abstractmethod
    def list_user_permission_handles(self, user_id: int) -> List[str]:
        """사용자에게 직접 부여된 권한 핸들 목록을 조회합니다."""
        pass

    @abstractmethod
    def list_group_permission_handles_for_user(self, user_id: int) -> List[str]:
        """사용자가 속한 모든 그룹을 통해 부여된 권한 핸들 목록을 조회합니다."""
        pass
