"""Signup handling: resolve attribution, sync the contact, clear state.

Attribution problems must never block account creation, so handle_signup
catches everything and reports an outcome instead of raising.
"""

import time

import structlog

from acbridge.models.settings import IntegrationSettings
from acbridge.models.signup import SignupOutcome, SignupUser, is_valid_email
from acbridge.repositories.session import SessionRepository
from acbridge.services.activecampaign import ActiveCampaignClient
from acbridge.services.tag_resolver import TagResolver
from acbridge.utils.cookies import CLIENT_TAGS_COOKIE, SERVER_TAGS_COOKIE, build_expired_cookie
from acbridge.utils.exceptions import InvalidInputError, NoAttributionSignal, NotConfiguredError
from acbridge.utils.request_context import RequestContext

logger = structlog.get_logger()


class SignupSyncService:
    """Runs the read path for one signup."""

    def __init__(
        self,
        settings: IntegrationSettings,
        client: ActiveCampaignClient | None = None,
        session_repository: SessionRepository | None = None,
        resolver: TagResolver | None = None,
    ):
        """Initialize the service.

        Args:
            settings: Integration settings.
            client: API client; built from settings when omitted.
            session_repository: Session store to clear after the signup.
            resolver: Tag resolver; built from settings when omitted.
        """
        self.settings = settings
        self.client = client or ActiveCampaignClient.from_settings(settings)
        self.session_repository = session_repository
        self.resolver = resolver or TagResolver(settings)

    def handle_signup(
        self,
        user: SignupUser,
        context: RequestContext,
        now: float | None = None,
    ) -> SignupOutcome:
        """Sync a new member to ActiveCampaign when an attribution tag exists.

        Args:
            user: The member who just signed up.
            context: The signup request.
            now: Unix time for expiry checks.

        Returns:
            SignupOutcome (synced, failed or skipped).
        """
        now = time.time() if now is None else now
        log = logger.bind(email=user.email)

        try:
            if not self.settings.is_configured:
                raise NotConfiguredError()
            if not is_valid_email(user.email):
                raise InvalidInputError("Invalid user email in signup event", field="email")

            log.info("Signup started")
            resolution = self.resolver.resolve_with_source(context, now)
            if not resolution:
                raise NoAttributionSignal()

            log.info(
                "Sending tags to ActiveCampaign",
                tags=resolution.tags,
                tag_source=resolution.source,
            )
            result = self.client.sync(
                user.email,
                user.first_name,
                user.last_name,
                resolution.tags,
            )
            if not result.success:
                log.error(
                    "ActiveCampaign sync failed",
                    error_code=result.error_code,
                    message=result.message,
                )
                outcome = SignupOutcome(
                    status="failed",
                    reason=result.error_code,
                    tags=resolution.tags,
                    tag_source=resolution.source,
                    result=result,
                )
            else:
                outcome = SignupOutcome(
                    status="synced",
                    tags=resolution.tags,
                    tag_source=resolution.source,
                    result=result,
                )
            log.info("Signup completed", status=outcome.status)

        except NoAttributionSignal:
            log.info("No tags found, skipping ActiveCampaign sync")
            outcome = SignupOutcome(status="skipped", reason="no_attribution")
        except NotConfiguredError:
            log.debug("Integration not configured, signup ignored")
            outcome = SignupOutcome(status="skipped", reason="not_configured")
        except InvalidInputError as e:
            log.warning("Invalid user in signup event", error=e.message)
            outcome = SignupOutcome(status="skipped", reason="invalid_user")
        except Exception as e:
            log.exception("Signup handling failed", error=str(e))
            outcome = SignupOutcome(status="failed", reason="internal_error")

        # Nothing was attempted, so visitor state is left for a later signup
        if outcome.reason not in ("not_configured", "invalid_user"):
            outcome.expired_cookies = self.clear_stored_tags(context)
        return outcome

    def clear_stored_tags(self, context: RequestContext) -> list[str]:
        """Delete session attribution and expire both attribution cookies.

        Returns:
            Set-Cookie header values that expire the cookies.
        """
        if self.session_repository is not None and context.session_id:
            try:
                self.session_repository.clear(context.session_id)
            except Exception as e:
                logger.warning(
                    "Failed to clear session attribution",
                    session_id=context.session_id,
                    error=str(e),
                )
        context.session_state = None

        cookies = [
            build_expired_cookie(name)
            for name in (SERVER_TAGS_COOKIE, CLIENT_TAGS_COOKIE)
            if name in context.cookies
        ]
        logger.debug("Cleared stored tags", expired_cookies=len(cookies))
        return cookies
