"""
Google Sheets Service — read-only access to the schedule spreadsheet.

Authenticates as a service account: an RS256-signed JWT assertion is
exchanged at Google's OAuth endpoint for a short-lived access token, which
is cached until shortly before it expires.
"""
import logging
import time
from typing import Optional

import httpx
import jwt

from exceptions import SheetsAccessError

logger = logging.getLogger(__name__)

TOKEN_URL = "https://oauth2.googleapis.com/token"
SHEETS_API_URL = "https://sheets.googleapis.com/v4/spreadsheets"
SCOPE = "https://www.googleapis.com/auth/spreadsheets.readonly"
JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"

ASSERTION_TTL_SECONDS = 3600
TOKEN_REFRESH_MARGIN_SECONDS = 60


class SheetsClient:
    def __init__(self, service_account_email: str, private_key_pem: str, timeout: float = 20.0):
        self.service_account_email = service_account_email
        self.private_key_pem = private_key_pem
        self.timeout = timeout
        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0

    @property
    def configured(self) -> bool:
        return bool(self.service_account_email and self.private_key_pem)

    def build_assertion(self, now: Optional[int] = None) -> str:
        now = now if now is not None else int(time.time())
        claims = {
            "iss": self.service_account_email,
            "scope": SCOPE,
            "aud": TOKEN_URL,
            "iat": now,
            "exp": now + ASSERTION_TTL_SECONDS,
        }
        try:
            return jwt.encode(claims, self.private_key_pem, algorithm="RS256")
        except (ValueError, TypeError, jwt.PyJWTError) as e:
            raise SheetsAccessError(f"Invalid Google service account key: {e}") from e

    async def _get_access_token(self) -> str:
        if self._access_token and time.time() < self._token_expires_at:
            return self._access_token
        if not self.configured:
            raise SheetsAccessError("Google service account credentials are not configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    TOKEN_URL,
                    data={"grant_type": JWT_BEARER_GRANT, "assertion": self.build_assertion()},
                )
        except httpx.HTTPError as e:
            raise SheetsAccessError(f"Google OAuth unreachable: {e}") from e

        if response.status_code != 200:
            raise SheetsAccessError(
                f"Google OAuth returned {response.status_code}: {response.text[:200]}"
            )

        data = response.json()
        self._access_token = data["access_token"]
        self._token_expires_at = time.time() + int(data.get("expires_in", 3600)) - TOKEN_REFRESH_MARGIN_SECONDS
        logger.info("🔑 Google Sheets access token refreshed")
        return self._access_token

    async def read_range(self, spreadsheet_id: str, range_: str) -> list[list]:
        """
        Return the cell values of `range_` (e.g. "MONDAY!A:H") as a list of rows.

        Trailing empty cells are omitted by the API, so rows can be ragged.
        """
        token = await self._get_access_token()
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    f"{SHEETS_API_URL}/{spreadsheet_id}/values/{range_}",
                    headers={"Authorization": f"Bearer {token}"},
                )
        except httpx.HTTPError as e:
            raise SheetsAccessError(f"Google Sheets unreachable: {e}") from e

        if response.status_code != 200:
            raise SheetsAccessError(
                f"Reading {range_} returned {response.status_code}: {response.text[:200]}"
            )
        return response.json().get("values", [])
