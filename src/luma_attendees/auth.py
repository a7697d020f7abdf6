"""Email + one-time passcode login flow."""

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from .config import LumaSettings, WaitSettings
from .exceptions import AuthenticationError, BrowserError

if TYPE_CHECKING:
    from .browser.session import PageSession

logger = logging.getLogger(__name__)

EMAIL_INPUT_SELECTOR = 'input[placeholder="you@email.com"]'
SUBMIT_BUTTON_SELECTOR = 'button[type="submit"]'
OTP_INPUT_SELECTOR = 'input[inputmode="numeric"]'
USER_MENU_SELECTOR = 'div[class*="UserMenu"]'

OtpPrompt = Callable[[], str]


class AuthFlow:
    """Drives a page through the two-factor sign-in.

    The OTP is read from ``otp_prompt`` (a blocking callable, run off the event
    loop) once the code inputs have rendered.
    """

    def __init__(
        self,
        page: "PageSession",
        otp_prompt: OtpPrompt,
        luma_settings: LumaSettings | None = None,
        wait_settings: WaitSettings | None = None,
    ):
        self.page = page
        self.otp_prompt = otp_prompt
        self.luma_settings = luma_settings or LumaSettings()
        self.wait_settings = wait_settings or WaitSettings()

    @property
    def signin_url(self) -> str:
        return f"{self.luma_settings.base_url.rstrip('/')}/signin"

    async def authenticate(self, email: str) -> None:
        """Sign in with ``email`` and an interactively supplied OTP.

        Raises:
            AuthenticationError: on a missing field, an empty code, or when the
                post-login race resolves to neither arm.
        """
        if not email:
            raise AuthenticationError("Email is required")

        operator_wait = self.wait_settings.operator_wait()
        try:
            await self.page.navigate(self.signin_url)
            logger.info("Logging in...")

            await self.page.wait_for_selector(EMAIL_INPUT_SELECTOR, timeout=operator_wait, visible=True)
            await self.page.type_text(EMAIL_INPUT_SELECTOR, email)
            if not await self.page.click(SUBMIT_BUTTON_SELECTOR):
                raise AuthenticationError("Could not find the sign-in submit button")
            logger.info(f"Entered email: {email}")

            await self.page.wait_for_selector(OTP_INPUT_SELECTOR, timeout=operator_wait, visible=True)
            logger.info("OTP input field is ready")

            otp = (await asyncio.to_thread(self.otp_prompt)).strip()
            if not otp:
                raise AuthenticationError("No OTP was entered")

            # Read before typing: the last digit may submit and navigate on its own
            signin_page = await self.page.current_url()
            await self._enter_otp(otp)
            await self._await_login(signin_page, operator_wait)
        except AuthenticationError:
            raise
        except BrowserError as e:
            logger.error(f"Login failed: {e}")
            raise AuthenticationError(f"Login failed: {e}") from e

        logger.info("Logged in successfully")

    async def _enter_otp(self, otp: str) -> None:
        """Type one digit into each code input, in order."""
        field_count = await self.page.count(OTP_INPUT_SELECTOR)
        logger.info(f"Found {field_count} OTP input fields")
        for index, digit in enumerate(otp[:field_count]):
            await self.page.type_text(OTP_INPUT_SELECTOR, digit, index=index)

    async def _await_login(self, signin_page: str, timeout: float | None) -> None:
        """Race a navigation away from the sign-in page against the user menu appearing.

        Whichever arm completes first wins and the other is cancelled. An arm that
        fails leaves the race to the other one.
        """
        pending = {
            asyncio.create_task(self.page.wait_for_navigation(timeout=timeout, from_url=signin_page), name="navigation"),
            asyncio.create_task(self.page.wait_for_selector(USER_MENU_SELECTOR, timeout=timeout), name="user_menu"),
        }
        failures: list[str] = []
        try:
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    error = task.exception()
                    if error is None:
                        logger.debug(f"Login confirmed by {task.get_name()}")
                        return
                    failures.append(f"{task.get_name()}: {error}")
        finally:
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        raise AuthenticationError(f"Login did not complete ({'; '.join(failures)})")
