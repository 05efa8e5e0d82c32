from .user import IUserRepository
from .group import IGroupRepository
from .permission import IPermissionRepository
from .membership import IMembershipRepository
