"""Wires the engine components together for the HTTP layer.

Every mutation of a host (deploy, removal) runs under that host's lock and
covers both the filesystem change and the registry update, so the record
always describes what is on disk once the lock is released.
"""
from __future__ import annotations

import logging
from pathlib import Path

from . import config
from .accounts import Account, AccountStore
from .credentials import verify_password
from .deploy import DeploymentManager
from .errors import Forbidden, NotFoundError, Unauthenticated, ValidationError
from .grants import AccessDecision, AccessGrantStore
from .locks import HostLocks
from .models import SiteMetadata, SiteType
from .registry import SiteRegistry
from .settings import SettingsStore
from .tokens import OperatorClaim, SessionTokenService, TokenScope, VisitorClaim
from .utils import is_valid_hostname

logger = logging.getLogger(__name__)


class SitePilot:
    def __init__(
        self,
        sites_dir: Path,
        db_path: Path,
        operator_secret: str,
        visitor_secret: str,
    ):
        self.locks = HostLocks()
        self.deployer = DeploymentManager(sites_dir, locks=self.locks)
        self.registry = SiteRegistry(sites_dir, db_path=db_path, locks=self.locks)
        self.settings = SettingsStore(db_path)
        self.operators = AccountStore("operators", db_path)
        self.visitors = AccountStore("visitors", db_path)
        self.grants = AccessGrantStore(self.visitors, db_path)
        self.tokens = SessionTokenService({
            TokenScope.OPERATOR: operator_secret,
            TokenScope.VISITOR: visitor_secret,
        })

    @classmethod
    def from_config(cls) -> "SitePilot":
        return cls(
            sites_dir=config.SITES_DIR,
            db_path=config.DB_PATH,
            operator_secret=config.AUTH_SECRET,
            visitor_secret=config.SITE_AUTH_SECRET,
        )

    # Sites

    def publish(
        self,
        host: str,
        document: bytes | None = None,
        archive: bytes | None = None,
        kind: SiteType | None = None,
    ) -> SiteMetadata:
        if not is_valid_hostname(host):
            raise ValidationError("Invalid hostname")
        with self.locks.hold(host):
            site = self.deployer.deploy(host, document=document, archive=archive, kind=kind)
            self.registry.upsert(site)
        return site

    def unpublish(self, host: str) -> None:
        if not is_valid_hostname(host):
            raise ValidationError("Invalid hostname")
        with self.locks.hold(host):
            had_dir = self.deployer.remove(host)
            had_record = self.registry.delete(host)
        if not (had_dir or had_record):
            raise NotFoundError(f"Site {host} not found")

    # Visitor scope

    def visitor_login(self, host: str, username: str, password: str) -> str:
        if not host or not is_valid_hostname(host):
            raise ValidationError("Invalid host")
        if not username or not password:
            raise ValidationError("Username and password are required")
        decision = self.grants.check(host, username, password)
        if decision is AccessDecision.INVALID:
            logger.info("Rejected visitor login for %s on %s", username, host)
            raise Unauthenticated("Invalid credentials")
        if decision is AccessDecision.FORBIDDEN:
            logger.info("Visitor %s has no access to %s", username, host)
            raise Forbidden("No access to this site")
        return self.tokens.issue(VisitorClaim(username=username, host=host))

    def check_visitor(self, token: str | None, host: str) -> VisitorClaim | None:
        """Claim for a visitor token that is still backed by an account and grant."""
        claim = self.tokens.verify(token, TokenScope.VISITOR, host=host)
        if claim is None:
            return None
        if not self.grants.has_grant(host, claim.username):
            return None
        return claim

    # Operator scope

    def operator_login(self, username: str, password: str) -> tuple[str, Account]:
        if not username or not password:
            raise ValidationError("Username and password are required")
        account = self.operators.get(username)
        if account is None or not verify_password(password, account.password_hash):
            logger.info("Rejected operator login for %s", username)
            raise Unauthenticated("Invalid credentials")
        token = self.tokens.issue(OperatorClaim(subject=str(account.id), username=account.username))
        logger.info("Operator %s logged in", username)
        return token, account

    def check_operator(self, token: str | None) -> Account | None:
        claim = self.tokens.verify(token, TokenScope.OPERATOR)
        if claim is None:
            return None
        return self.operators.get_by_id(claim.subject)

    def ensure_default_operator(self, username: str, password: str | None) -> None:
        """Seed the first operator account when none exists."""
        if self.operators.count():
            return
        if not password:
            logger.warning("Operator accounts enabled but no default password set; no operator created")
            return
        self.operators.save(username, password)
        logger.info('Seeded default operator "%s"', username)
