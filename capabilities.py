"""
LISQ capabilities - explicit role tags attached to each concrete type
Binding operations check the tag set instead of duck-typing the value
"""

from typing import Any, Callable, FrozenSet

from error_handling import CompositionError, TypeMismatch


class Role:
  """A named capability a type can compose"""

  def __init__(self, name: str):
    self.name = name

  def __repr__(self) -> str:
    return self.name


POSITIONAL = Role("Positional")
ASSOCIATIVE = Role("Associative")
ITERABLE = Role("Iterable")


def compose(*roles: Role) -> Callable[[type], type]:
  """Class decorator composing roles into a type

  Roles accumulate along the inheritance chain; composing anything that is
  not a Role raises CompositionError.

  Examples:
    @compose(POSITIONAL, ITERABLE)
    class List(Iterable): ...
  """
  def decorate(cls: type) -> type:
    for role in roles:
      if not isinstance(role, Role):
        raise CompositionError(cls.__name__, role)
    inherited = frozenset()
    for base in cls.__mro__[1:]:
      inherited |= base.__dict__.get('_roles', frozenset())
    cls._roles = inherited | frozenset(roles)
    return cls

  return decorate


def roles_of(value: Any) -> FrozenSet[Role]:
  """Roles composed by the value's type"""
  return getattr(type(value), '_roles', frozenset())


def does(value: Any, role: Role) -> bool:
  return role in roles_of(value)


def require_role(value: Any, role: Role, target: str) -> None:
  """Raise TypeMismatch unless the value's type composes the role"""
  if not does(value, role):
    raise TypeMismatch(role.name, type(value).__name__, target)
