# authapi/services/auth/service.py
from __future__ import annotations

import logging
from collections.abc import Mapping

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from authapi.models.oauth_identity import OAuthProvider
from authapi.models.single_use_token import TokenType
from authapi.models.user import User
from authapi.services._shared.base import BaseService, ServiceContext
from authapi.services._shared.errors import (
    AuthenticationError,
    ConflictError,
    InvalidTokenError,
    NotFoundError,
    OAuthLinkConflictError,
    TokenNotFoundError,
    ValidationError,
    violates,
)
from authapi.services._shared.ports import (
    OAuthProviderClient,
    SessionSubject,
    SessionTokenCodec,
    TokenClass,
)
from authapi.services.auth.dto import LoginIn, SessionOut, SignupIn, TvCodeOut
from authapi.services.auth.strategies import (
    BearerCredentials,
    CodeCredentials,
    FailureKind,
    PasswordCredentials,
    Strategy,
    StrategyContext,
    StrategyResult,
    authenticate,
)
from authapi.services.credentials.dto import UserCreateIn, UserPatchIn, UserPublicOut
from authapi.services.credentials.service import CredentialService, to_public
from authapi.services.tokens.service import SingleUseTokenService

log = logging.getLogger(__name__)

_SESSION_STRATEGIES = frozenset({Strategy.SESSION_HEADER, Strategy.SESSION_PARAM})


class AuthService(BaseService):
    """
    Authentication orchestrator.

    Accepts a credential (password, session token, OAuth state, TV code),
    proves it through the matching :class:`Strategy`, and answers with a
    fresh short/long token pair. Failed proofs are converted into service
    errors here and nowhere else.
    """

    def __init__(
        self,
        *,
        codec: SessionTokenCodec,
        tokens: SingleUseTokenService,
        credentials: CredentialService,
        oauth_clients: Mapping[str, OAuthProviderClient] | None = None,
        ctx: ServiceContext | None = None,
    ) -> None:
        """
        :param codec: Mints and verifies session tokens.
        :param tokens: Single-use code generator (TV login, email verification).
        :param credentials: Credential store use cases.
        :param oauth_clients: Provider name to HTTP client.
        """
        super().__init__(ctx=ctx)
        self.codec = codec
        self.tokens = tokens
        self.credentials = credentials
        self.oauth_clients = dict(oauth_clients or {})

    # ------------------------------------------------------------------ #
    # Signup / login
    # ------------------------------------------------------------------ #

    def signup(self, dto: SignupIn) -> SessionOut:
        """Create the account, send its verification email, open a session."""
        user = self.credentials.create(UserCreateIn(email=dto.email, password=dto.password))
        subject = SessionSubject(
            user_id=user.id, email=user.email, email_verified=user.email_verified
        )
        return SessionOut(user=user, tokens=self.codec.mint_pair(subject))

    def login(self, dto: LoginIn) -> SessionOut:
        """
        Authenticate email and password.

        :raises AuthenticationError: Unknown email or wrong password, alike.
        """
        with self.ro_uow() as uow:
            result = authenticate(
                Strategy.PASSWORD,
                self._strategy_ctx(uow),
                PasswordCredentials(email=dto.email, password=dto.password),
            )
            user_id = self._require_identity(result)
            user = uow.users.get(user_id)
            if user is None:
                raise AuthenticationError()
            out = self._session_for(user)

        log.info("login succeeded", extra={"event": "auth.login", "user_id": out.user.id})
        return out

    # ------------------------------------------------------------------ #
    # Session refresh
    # ------------------------------------------------------------------ #

    def authenticate_session(
        self,
        token: str,
        token_class: TokenClass,
        strategy: Strategy = Strategy.SESSION_HEADER,
    ) -> SessionOut:
        """
        Verify a bearer session token and answer with a fresh pair.

        :raises InvalidTokenError: Token fails verification or its user is gone.
        """
        strategy = Strategy(strategy)
        if strategy not in _SESSION_STRATEGIES:
            raise ValueError(f"{strategy.value} is not a session strategy.")
        with self.ro_uow() as uow:
            user = self._bearer_user(uow, strategy, token, TokenClass(token_class))
            return self._session_for(user)

    # ------------------------------------------------------------------ #
    # TV login
    # ------------------------------------------------------------------ #

    def issue_tv_code(
        self, short_token: str, strategy: Strategy = Strategy.SESSION_HEADER
    ) -> TvCodeOut:
        """Issue a TV-login code for the holder of ``short_token``."""
        with self.rw_uow() as uow:
            user = self._bearer_user(uow, strategy, short_token, TokenClass.SHORT)
            view = self.tokens.issue(user.id, TokenType.TV_LOGIN)
            session = self._session_for(user)
        return TvCodeOut(
            code=view.code, expires_at=view.expires_at, user=session.user, tokens=session.tokens
        )

    def redeem_tv_code(self, code: str) -> SessionOut:
        """
        Exchange a TV-login code for a session of its issuer.

        :raises TokenNotFoundError: Code unknown, used, expired, or owner gone.
        """
        with self.rw_uow() as uow:
            result = authenticate(
                Strategy.TV_CODE, self._strategy_ctx(uow), CodeCredentials(code=code)
            )
            user_id = self._require_identity(result)
            user = uow.users.get(user_id)
            if user is None:
                raise TokenNotFoundError()
            return self._session_for(user)

    # ------------------------------------------------------------------ #
    # Email verification
    # ------------------------------------------------------------------ #

    def verify_email(self, code: str) -> UserPublicOut:
        """
        Redeem an email-verification code and mark its owner verified.

        :raises TokenNotFoundError: Code unknown, used, expired, or owner gone.
        """
        try:
            with self.rw_uow() as uow:
                view = self.tokens.redeem(code, TokenType.EMAIL_VERIFICATION)
                user = uow.users.get_for_update(view.user_id)
                if user is None:
                    raise TokenNotFoundError()
                if not user.email_verified:
                    uow.users.assign_updates(user, {"email_verified": True})
                out = to_public(user)
        except StaleDataError as exc:
            raise ConflictError("User", "account was modified concurrently") from exc

        log.info("email verified", extra={"event": "user.email_verified", "user_id": out.id})
        return out

    # ------------------------------------------------------------------ #
    # OAuth
    # ------------------------------------------------------------------ #

    def begin_oauth(
        self, provider: str, token: str, strategy: Strategy = Strategy.SESSION_PARAM
    ) -> str:
        """
        Build the provider consent URL for the holder of a short ``token``.

        The URL carries a freshly minted short token as ``state``; the
        callback proves the same user through :attr:`Strategy.OAUTH_STATE`.
        """
        strategy = Strategy(strategy)
        if strategy not in _SESSION_STRATEGIES:
            raise ValueError(f"{strategy.value} is not a session strategy.")
        client = self._client(provider)
        with self.ro_uow() as uow:
            user = self._bearer_user(uow, strategy, token, TokenClass.SHORT)
            state = self.codec.mint(TokenClass.SHORT, self._subject(user))
        return client.authorize_url(state)

    def complete_oauth(self, provider: str, code: str, state: str) -> SessionOut:
        """
        Finish the provider round trip and link the resulting profile.

        The state is checked before any provider call is made.
        """
        client = self._client(provider)
        with self.ro_uow() as uow:
            self._require_identity(
                authenticate(
                    Strategy.OAUTH_STATE, self._strategy_ctx(uow), BearerCredentials(token=state)
                )
            )
        access_token = client.exchange_code(code)
        profile_id = client.fetch_profile_id(access_token)
        return self.link_oauth(state, client.provider, profile_id)

    def link_oauth(self, state_token: str, provider: str, profile_id: str) -> SessionOut:
        """
        Link ``(provider, profile_id)`` to the user proven by ``state_token``.

        Linking the same profile again is a no-op. Replacing a different
        profile for the same provider, or taking a profile owned by another
        user, raises :class:`OAuthLinkConflictError`.
        """
        name = self._provider(provider).value
        profile_id = str(profile_id or "").strip()
        if not profile_id:
            raise ValidationError("Invalid OAuth profile.", {"profile_id": ["Required."]})

        try:
            with self.rw_uow() as uow:
                result = authenticate(
                    Strategy.OAUTH_STATE,
                    self._strategy_ctx(uow),
                    BearerCredentials(token=state_token),
                )
                user_id = self._require_identity(result)
                user = uow.users.get_for_update(user_id)
                if user is None:
                    raise InvalidTokenError()

                linked = user.identity_for(name)
                if linked is not None and linked.profile_id != profile_id:
                    raise OAuthLinkConflictError(name)
                if linked is None:
                    owner = uow.users.get_by_oauth_profile(name, profile_id)
                    if owner is not None and owner.id != user.id:
                        raise OAuthLinkConflictError(
                            name, f"This {name} account is linked to another user."
                        )
                    uow.users.link_identity(user, name, profile_id)
                    log.info(
                        "oauth identity linked",
                        extra={"event": "oauth.linked", "user_id": user.id, "provider": name},
                    )
                out = self._session_for(user)
        except IntegrityError as exc:
            if violates(
                exc, "uq_oauth_identities_user_provider", "oauth_identities.user_id"
            ) or violates(exc, "uq_oauth_identities_provider_profile", "oauth_identities.profile_id"):
                raise OAuthLinkConflictError(name) from exc
            raise
        except StaleDataError as exc:
            raise ConflictError("User", "account was modified concurrently") from exc
        return out

    # ------------------------------------------------------------------ #
    # Self-service account management
    # ------------------------------------------------------------------ #

    def update_account(self, token: str, user_id: int, patch: UserPatchIn) -> SessionOut:
        """Apply a self-service patch and reissue tokens carrying the new claims."""
        user = self.credentials.update(token, user_id, patch)
        subject = SessionSubject(
            user_id=user.id, email=user.email, email_verified=user.email_verified
        )
        return SessionOut(user=user, tokens=self.codec.mint_pair(subject))

    def delete_account(self, token: str, user_id: int) -> UserPublicOut:
        return self.credentials.delete(token, user_id)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _strategy_ctx(self, uow) -> StrategyContext:
        return StrategyContext(users=uow.users, codec=self.codec, tokens=self.tokens)

    def _bearer_user(self, uow, strategy: Strategy, token: str, token_class: TokenClass) -> User:
        result = authenticate(
            strategy,
            self._strategy_ctx(uow),
            BearerCredentials(token=token, token_class=token_class),
        )
        user = uow.users.get(self._require_identity(result))
        if user is None:
            raise InvalidTokenError()
        return user

    @staticmethod
    def _require_identity(result: StrategyResult) -> int:
        if result.ok:
            return int(result.user_id)  # type: ignore[arg-type]
        if result.failure is FailureKind.BAD_CREDENTIALS:
            log.warning("login failed", extra={"event": "auth.login_failed"})
            raise AuthenticationError()
        if result.failure is FailureKind.CODE_NOT_FOUND:
            raise TokenNotFoundError()
        raise InvalidTokenError()

    @staticmethod
    def _subject(user: User) -> SessionSubject:
        return SessionSubject(
            user_id=user.id, email=user.email, email_verified=bool(user.email_verified)
        )

    def _session_for(self, user: User) -> SessionOut:
        return SessionOut(user=to_public(user), tokens=self.codec.mint_pair(self._subject(user)))

    @staticmethod
    def _provider(name: str) -> OAuthProvider:
        try:
            return OAuthProvider(str(name).lower())
        except ValueError as exc:
            raise ValidationError(
                "Unsupported OAuth provider.",
                {"provider": [f"Must be one of: {', '.join(p.value for p in OAuthProvider)}."]},
            ) from exc

    def _client(self, name: str) -> OAuthProviderClient:
        provider = self._provider(name)
        client = self.oauth_clients.get(provider.value)
        if client is None:
            raise NotFoundError("OAuthProvider", provider.value)
        return client
