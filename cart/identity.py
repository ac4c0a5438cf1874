from dataclasses import dataclass

from .exceptions import IdentityRequired


@dataclass(frozen=True)
class AccountOwner:
    user_id: str

    @property
    def lookup(self):
        return {'user_id': self.user_id}


@dataclass(frozen=True)
class SessionOwner:
    session_key: str

    @property
    def lookup(self):
        return {'session_key': self.session_key}


def resolve_owner(user_id=None, session_key=None):
    """Build the cart owner for a caller.

    An authenticated caller always owns the account cart, so the session is
    only consulted when no account is given.
    """
    if user_id is not None and str(user_id) != '':
        return AccountOwner(str(user_id))
    if session_key is not None and str(session_key) != '':
        return SessionOwner(str(session_key))
    raise IdentityRequired()
