from .user import User
from .group import Group
from .permission import Permission
from .association import UserGroup, GroupLeader, GroupPermission, UserPermission
