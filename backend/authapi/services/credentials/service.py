"""
CredentialService
=================

Owns the lifecycle of :class:`~authapi.models.user.User` records:

- Signup validates input before touching the database, inserts the user with
  a hashed password, issues an email-verification code and sends it. A failed
  send rolls the whole signup back.
- Self-service update/delete require a *short* session token whose subject is
  the target user.
- Every returned value is a DTO; ORM instances never leave a unit of work.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from authapi.models.single_use_token import TokenType
from authapi.models.user import User
from authapi.repositories.user import UserRepository
from authapi.services._shared.base import BaseService, ServiceContext
from authapi.services._shared.errors import (
    AuthMismatchError,
    ConflictError,
    DeliveryError,
    DuplicateEmailError,
    InvalidTokenError,
    ValidationError,
    violates,
)
from authapi.services._shared.ports import EmailSender, SessionTokenCodec, TokenClass
from authapi.services.credentials.dto import (
    OAuthIdentityOut,
    UserCreateIn,
    UserPatchIn,
    UserPublicOut,
)
from authapi.services.credentials.policy import PasswordPolicy, email_errors
from authapi.services.tokens.service import SingleUseTokenService

log = logging.getLogger(__name__)


def to_public(user: User) -> UserPublicOut:
    """
    Map an ORM ``User`` to :class:`UserPublicOut`.

    Must be called while ``user`` is still attached to its session.
    """
    return UserPublicOut(
        id=user.id,
        email=user.email,
        email_verified=bool(user.email_verified),
        oauth_identities=tuple(
            OAuthIdentityOut(provider=i.provider, profile_id=i.profile_id)
            for i in user.oauth_identities
        ),
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


class CredentialService(BaseService):
    """
    Credential store use cases.

    :param codec: Session token codec used to authorize self-service writes.
    :param tokens: Single-use token generator (email-verification codes).
    :param mailer: Verification email collaborator.
    :param policy: Password strength rules.
    """

    def __init__(
        self,
        *,
        codec: SessionTokenCodec,
        tokens: SingleUseTokenService,
        mailer: EmailSender,
        policy: PasswordPolicy | None = None,
        ctx: ServiceContext | None = None,
    ) -> None:
        super().__init__(ctx=ctx)
        self.codec = codec
        self.tokens = tokens
        self.mailer = mailer
        self.policy = policy or PasswordPolicy()

    # ------------------------------------------------------------------ #
    # Create
    # ------------------------------------------------------------------ #

    def create(self, dto: UserCreateIn) -> UserPublicOut:
        """
        Register a new account and send its verification email.

        :raises ValidationError: Malformed email or weak password.
        :raises DuplicateEmailError: Email already registered.
        :raises DeliveryError: The verification email was not accepted; nothing
            is persisted.
        """
        errors: dict[str, list[str]] = {}
        if problems := email_errors(dto.email):
            errors["email"] = problems
        if problems := self.policy.violations(dto.password):
            errors["password"] = problems
        if errors:
            raise ValidationError("Invalid signup data.", errors)

        email = dto.email.strip().lower()
        try:
            with self.rw_uow() as uow:
                repo: UserRepository = uow.users
                if repo.exists_by_email(email):
                    raise DuplicateEmailError()

                user = User(email=email, password=dto.password)
                repo.add(user)
                self._send_verification(user)
                out = to_public(user)
        except IntegrityError as exc:
            if violates(exc, "uq_users_email", "users.email"):
                raise DuplicateEmailError() from exc
            raise

        log.info("account created", extra={"event": "user.created", "user_id": out.id})
        return out

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def find_by_id(self, user_id: int) -> UserPublicOut | None:
        with self.ro_uow() as uow:
            user = uow.users.get(user_id)
            return to_public(user) if user is not None else None

    def find_by_email(self, email: str) -> UserPublicOut | None:
        if not isinstance(email, str) or not email.strip():
            return None
        with self.ro_uow() as uow:
            user = uow.users.get_by_email(email)
            return to_public(user) if user is not None else None

    def verify_password(self, user: User, password: str) -> bool:
        """Check ``password`` against the stored salted hash."""
        return user.verify_password(password)

    # ------------------------------------------------------------------ #
    # Self-service writes
    # ------------------------------------------------------------------ #

    def authorize_self(self, requestor_token: str, target_user_id: int) -> int:
        """
        Verify ``requestor_token`` as a short session token for ``target_user_id``.

        :raises InvalidTokenError: Token does not verify.
        :raises AuthMismatchError: Token belongs to someone else.
        """
        claims = self.codec.verify(TokenClass.SHORT, requestor_token)
        if claims.user_id != target_user_id:
            log.warning(
                "session subject does not own target account",
                extra={"event": "user.auth_mismatch", "user_id": claims.user_id},
            )
            raise AuthMismatchError()
        return claims.user_id

    def update(
        self, requestor_token: str, target_user_id: int, patch: UserPatchIn
    ) -> UserPublicOut:
        """
        Apply a self-service patch (email and/or password).

        The record that would result from the patch is validated as a whole
        before anything is written. Changing the email clears
        ``email_verified``, drops pending verification codes and sends a new one.

        :raises ValidationError: Resulting record is invalid.
        :raises DuplicateEmailError: New email belongs to another account.
        :raises ConflictError: A concurrent write won the race.
        """
        user_id = self.authorize_self(requestor_token, target_user_id)
        updates = patch.as_updates()

        try:
            with self.rw_uow() as uow:
                repo: UserRepository = uow.users
                user = repo.get_for_update(user_id)
                if user is None:
                    raise InvalidTokenError()

                new_email = updates.get("email", user.email)
                email_changed = new_email.strip().lower() != user.email
                self._validate_record(repo, user, new_email, updates.get("password"))

                if email_changed:
                    updates["email"] = new_email
                    updates["email_verified"] = False
                else:
                    updates.pop("email", None)
                if updates:
                    repo.assign_updates(user, updates)
                if email_changed:
                    self.tokens.discard_for_user(user.id, TokenType.EMAIL_VERIFICATION)
                    self._send_verification(user)
                out = to_public(user)
        except StaleDataError as exc:
            raise ConflictError("User", "account was modified concurrently") from exc
        except IntegrityError as exc:
            if violates(exc, "uq_users_email", "users.email"):
                raise DuplicateEmailError() from exc
            raise

        log.info(
            "account updated",
            extra={"event": "user.updated", "user_id": out.id},
        )
        return out

    def delete(self, requestor_token: str, target_user_id: int) -> UserPublicOut:
        """
        Delete the requestor's own account.

        :returns: Snapshot of the account taken before deletion.
        """
        user_id = self.authorize_self(requestor_token, target_user_id)
        try:
            with self.rw_uow() as uow:
                repo: UserRepository = uow.users
                user = repo.get_for_update(user_id)
                if user is None:
                    raise InvalidTokenError()
                snapshot = to_public(user)
                self.tokens.discard_for_user(user.id)
                repo.delete(user)
        except StaleDataError as exc:
            raise ConflictError("User", "account was modified concurrently") from exc

        log.info("account deleted", extra={"event": "user.deleted", "user_id": snapshot.id})
        return snapshot

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _validate_record(
        self, repo: UserRepository, user: User, email: str, password: str | None
    ) -> None:
        errors: dict[str, list[str]] = {}
        if problems := email_errors(email):
            errors["email"] = problems
        if password is not None and (problems := self.policy.violations(password)):
            errors["password"] = problems
        if errors:
            raise ValidationError("Invalid account data.", errors)
        if repo.exists_by_email(email, exclude_id=user.id):
            raise DuplicateEmailError()

    def _send_verification(self, user: User) -> None:
        """Issue a verification code for ``user`` and email it.

        On delivery failure the code is discarded explicitly (key-value
        stores do not take part in the SQL transaction) and the error
        propagates so the caller's unit of work rolls back.
        """
        view = self.tokens.issue(user.id, TokenType.EMAIL_VERIFICATION)
        try:
            self.mailer.send_verification_email(user.email, view.code)
        except DeliveryError:
            log.warning(
                "verification email not delivered",
                extra={"event": "mail.failed", "user_id": user.id},
            )
            self.tokens.discard_for_user(user.id, TokenType.EMAIL_VERIFICATION)
            raise
