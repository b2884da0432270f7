"""
Role-based authorization policy.

These are plain functions over a :class:`.domain.User` (or anything with a
``role``, and for :func:`can_edit` a ``user_id``). They do no I/O. Roles may
be given as :class:`.domain.Role` members or as their serialized values
(``'admin'``, ``'writer'``, ``'user'``); an unknown value is an error rather
than a silent mismatch.

.. code-block:: python

   from cms_auth import policy
   from cms_auth.domain import Role

   if not policy.can_edit(user, article.author_id):
       abort(403)

   is_staff = policy.require_role([Role.ADMINISTRATOR, Role.CONTRIBUTOR])
   if is_staff(user):
       ...

"""

from typing import Any, Callable, Iterable, Optional, Union

from .domain import Role

RoleSpec = Union[Role, str, Iterable[Union[Role, str]]]


def _roles(required: RoleSpec) -> frozenset:
    if isinstance(required, (Role, str)):
        return frozenset([Role.coerce(required)])
    return frozenset(Role.coerce(role) for role in required)


def _role_of(user: Any) -> Optional[Role]:
    role = getattr(user, 'role', None)
    if role is None:
        return None
    return Role.coerce(role)


def has_role(user: Any, required: RoleSpec) -> bool:
    """
    Check whether ``user`` holds ``required``.

    If ``required`` is a collection of roles, holding any one of them is
    enough.
    """
    wanted = _roles(required)
    if user is None:
        return False
    return _role_of(user) in wanted


def is_administrator(user: Any) -> bool:
    """Administrators may do anything."""
    return has_role(user, Role.ADMINISTRATOR)


def can_author(user: Any) -> bool:
    """Administrators and contributors may write content."""
    return has_role(user, [Role.ADMINISTRATOR, Role.CONTRIBUTOR])


def can_edit(user: Any, owner_id: Optional[str] = None) -> bool:
    """
    Check whether ``user`` may edit a resource owned by ``owner_id``.

    Administrators may edit anything. Contributors may edit only what they
    own. Nobody else may edit anything.
    """
    if is_administrator(user):
        return True
    if has_role(user, Role.CONTRIBUTOR) and owner_id is not None:
        user_id = getattr(user, 'user_id', None)
        return user_id is not None and str(user_id) == str(owner_id)
    return False


def require_role(required: RoleSpec) -> Callable[[Any], bool]:
    """Make a predicate that checks a (possibly absent) user for a role."""
    wanted = _roles(required)

    def check(user: Any) -> bool:
        return user is not None and _role_of(user) in wanted
    return check
