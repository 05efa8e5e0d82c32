# membership/services/exceptions.py

# --- Configuration Exceptions ---
class InvalidConfigurationError(Exception):
    """설정값(예: 핸들 구분자)이 유효하지 않을 때"""
    pass

# --- Not Found Exceptions ---
class UserNotFoundError(Exception):
    """사용자를 찾을 수 없을 때"""
    pass

class GroupNotFoundError(Exception):
    """그룹을 찾을 수 없을 때"""
    pass

class PermissionNotFoundError(Exception):
    """권한 참조(ID, 핸들)를 해석할 수 없을 때"""
    pass

# --- Creation/Validation Exceptions ---
class DuplicateHandleError(Exception):
    """생성하거나 변경하려는 핸들이 이미 존재할 때"""
    pass

class GroupFullError(Exception):
    """그룹 인원 제한에 도달하여 사용자를 배정할 수 없을 때"""
    pass

class PermissionInUseError(Exception):
    """그룹 또는 사용자에게 부여된 권한을 삭제하려고 할 때"""
    pass
