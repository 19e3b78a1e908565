"""
Output value filter — valeur exposée/affichée dans les templates selon le contrôle.

    >>> filt = OutputValueFilter()
    >>> filt.register("user", user_resolver(lookup))
    >>> filt.resolve("jdoe", "user", echo=True)   # → "John Doe" ou ""

Un contrôle sans resolver enregistré → valeur inchangée.
"""
import logging
from typing import Any, Callable, Dict, Optional, Protocol

from sqlalchemy.orm import Session, sessionmaker

from .database import db_get_user_by_login
from .models import UserDB

log = logging.getLogger(__name__)

Resolver = Callable[[Any, bool], Any]


class UserLookup(Protocol):
    def get_by_login(self, login: str) -> Optional[Any]: ...


class DatabaseUserLookup:
    """Lookup des users par login dans la table users."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get_by_login(self, login: str) -> Optional[UserDB]:
        if not isinstance(login, str) or not login:
            return None
        db: Session = self.session_factory()
        try:
            user = db_get_user_by_login(db, login)
            if user is not None:
                db.expunge(user)
            return user
        finally:
            db.close()


def user_resolver(lookup: UserLookup) -> Resolver:
    """echo → display_name ou "" ; sinon → le user ou False."""
    def resolve(value: Any, echo: bool) -> Any:
        user = lookup.get_by_login(value)
        if echo:
            return user.display_name if user else ""
        return user if user else False
    return resolve


class OutputValueFilter:
    def __init__(self):
        self._resolvers: Dict[str, Resolver] = {}

    def register(self, control: str, resolver: Resolver):
        if control in self._resolvers:
            log.info("Resolver '%s' remplacé", control)
        self._resolvers[control] = resolver

    def unregister(self, control: str):
        self._resolvers.pop(control, None)

    def __contains__(self, control: str) -> bool:
        return control in self._resolvers

    def resolve(self, value: Any, control: Optional[str], echo: bool) -> Any:
        resolver = self._resolvers.get(control) if control else None
        if resolver is None:
            return value
        return resolver(value, echo)

    __call__ = resolve
