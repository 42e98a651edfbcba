"""
Calendar provider clients (Google Calendar, Microsoft Graph / Outlook)
OAuth code exchange, token refresh and event CRUD over httpx
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Optional
from urllib.parse import urlencode

import httpx

from ..config import (
    GOOGLE_CLIENT_ID,
    GOOGLE_CLIENT_SECRET,
    GOOGLE_REDIRECT_URI,
    MICROSOFT_CLIENT_ID,
    MICROSOFT_CLIENT_SECRET,
    MICROSOFT_REDIRECT_URI,
    MICROSOFT_TENANT,
)

logger = logging.getLogger(__name__)

HTTP_TIMEOUT = 15.0


class CalendarProviderError(Exception):
    """Raised when a provider API call fails"""


class TokenSet:
    def __init__(self, access_token: str, refresh_token: Optional[str], expires_in: int, scope: str = ""):
        self.access_token = access_token
        self.refresh_token = refresh_token
        self.expires_at = datetime.utcnow() + timedelta(seconds=expires_in)
        self.scopes = [s for s in scope.split(" ") if s]


def _check(response: httpx.Response, action: str) -> httpx.Response:
    if response.status_code >= 400:
        logger.error(f"❌ {action} failed ({response.status_code}): {response.text[:300]}")
        raise CalendarProviderError(f"{action} failed with HTTP {response.status_code}")
    return response


class GoogleCalendarProvider:
    name = "google"
    AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"  # noqa: S105 - OAuth endpoint URL
    USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
    CALENDAR_API = "https://www.googleapis.com/calendar/v3"
    SCOPES = [
        "https://www.googleapis.com/auth/calendar.events",
        "https://www.googleapis.com/auth/userinfo.email",
    ]

    def is_configured(self) -> bool:
        return bool(GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET)

    def authorize_url(self, state: str) -> str:
        params = {
            "client_id": GOOGLE_CLIENT_ID,
            "redirect_uri": GOOGLE_REDIRECT_URI,
            "response_type": "code",
            "scope": " ".join(self.SCOPES),
            "access_type": "offline",
            "prompt": "consent",
            "state": state,
        }
        return f"{self.AUTH_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> TokenSet:
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
            response = await client.post(
                self.TOKEN_URL,
                data={
                    "code": code,
                    "client_id": GOOGLE_CLIENT_ID,
                    "client_secret": GOOGLE_CLIENT_SECRET,
                    "redirect_uri": GOOGLE_REDIRECT_URI,
                    "grant_type": "authorization_code",
                },
            )
        tokens = _check(response, "Google code exchange").json()
        return TokenSet(
            tokens["access_token"], tokens.get("refresh_token"), tokens.get("expires_in", 3600), tokens.get("scope", "")
        )

    async def refresh(self, refresh_token: str) -> TokenSet:
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
            response = await client.post(
                self.TOKEN_URL,
                data={
                    "client_id": GOOGLE_CLIENT_ID,
                    "client_secret": GOOGLE_CLIENT_SECRET,
                    "refresh_token": refresh_token,
                    "grant_type": "refresh_token",
                },
            )
        tokens = _check(response, "Google token refresh").json()
        # Google does not rotate refresh tokens on refresh
        return TokenSet(tokens["access_token"], refresh_token, tokens.get("expires_in", 3600))

    async def fetch_account(self, access_token: str) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
            response = await client.get(
                self.USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"}
            )
        info = _check(response, "Google user info").json()
        return {"id": info.get("id"), "email": info.get("email"), "calendar_id": "primary"}

    def build_event(self, summary: str, description: str, start: datetime, end: datetime) -> dict:
        return {
            "summary": summary,
            "description": description,
            "start": {"dateTime": start.isoformat(), "timeZone": "UTC"},
            "end": {"dateTime": end.isoformat(), "timeZone": "UTC"},
        }

    async def create_event(self, access_token: str, calendar_id: Optional[str], event: dict) -> str:
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
            response = await client.post(
                f"{self.CALENDAR_API}/calendars/{calendar_id or 'primary'}/events",
                headers={"Authorization": f"Bearer {access_token}"},
                json=event,
            )
        return _check(response, "Google event create").json()["id"]

    async def update_event(self, access_token: str, calendar_id: Optional[str], event_id: str, event: dict) -> None:
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
            response = await client.patch(
                f"{self.CALENDAR_API}/calendars/{calendar_id or 'primary'}/events/{event_id}",
                headers={"Authorization": f"Bearer {access_token}"},
                json=event,
            )
        _check(response, "Google event update")

    async def delete_event(self, access_token: str, calendar_id: Optional[str], event_id: str) -> None:
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
            response = await client.delete(
                f"{self.CALENDAR_API}/calendars/{calendar_id or 'primary'}/events/{event_id}",
                headers={"Authorization": f"Bearer {access_token}"},
            )
        # Already gone is fine
        if response.status_code not in (404, 410):
            _check(response, "Google event delete")


class OutlookCalendarProvider:
    name = "outlook"
    GRAPH_API = "https://graph.microsoft.com/v1.0"
    SCOPES = ["offline_access", "Calendars.ReadWrite", "User.Read"]

    @property
    def authority(self) -> str:
        return f"https://login.microsoftonline.com/{MICROSOFT_TENANT}/oauth2/v2.0"

    def is_configured(self) -> bool:
        return bool(MICROSOFT_CLIENT_ID and MICROSOFT_CLIENT_SECRET)

    def authorize_url(self, state: str) -> str:
        params = {
            "client_id": MICROSOFT_CLIENT_ID,
            "redirect_uri": MICROSOFT_REDIRECT_URI,
            "response_type": "code",
            "response_mode": "query",
            "scope": " ".join(self.SCOPES),
            "state": state,
        }
        return f"{self.authority}/authorize?{urlencode(params)}"

    async def _token_request(self, data: dict, action: str) -> dict:
        payload = {
            "client_id": MICROSOFT_CLIENT_ID,
            "client_secret": MICROSOFT_CLIENT_SECRET,
            "scope": " ".join(self.SCOPES),
            **data,
        }
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
            response = await client.post(f"{self.authority}/token", data=payload)
        return _check(response, action).json()

    async def exchange_code(self, code: str) -> TokenSet:
        tokens = await self._token_request(
            {"code": code, "redirect_uri": MICROSOFT_REDIRECT_URI, "grant_type": "authorization_code"},
            "Outlook code exchange",
        )
        return TokenSet(
            tokens["access_token"], tokens.get("refresh_token"), tokens.get("expires_in", 3600), tokens.get("scope", "")
        )

    async def refresh(self, refresh_token: str) -> TokenSet:
        tokens = await self._token_request(
            {"refresh_token": refresh_token, "grant_type": "refresh_token"}, "Outlook token refresh"
        )
        return TokenSet(
            tokens["access_token"], tokens.get("refresh_token", refresh_token), tokens.get("expires_in", 3600)
        )

    async def fetch_account(self, access_token: str) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
            response = await client.get(
                f"{self.GRAPH_API}/me", headers={"Authorization": f"Bearer {access_token}"}
            )
        info = _check(response, "Outlook profile").json()
        return {
            "id": info.get("id"),
            "email": info.get("mail") or info.get("userPrincipalName"),
            "calendar_id": None,
        }

    def build_event(self, summary: str, description: str, start: datetime, end: datetime) -> dict:
        return {
            "subject": summary,
            "body": {"contentType": "text", "content": description},
            "start": {"dateTime": start.isoformat(), "timeZone": "UTC"},
            "end": {"dateTime": end.isoformat(), "timeZone": "UTC"},
        }

    def _events_url(self, calendar_id: Optional[str]) -> str:
        if calendar_id:
            return f"{self.GRAPH_API}/me/calendars/{calendar_id}/events"
        return f"{self.GRAPH_API}/me/calendar/events"

    async def create_event(self, access_token: str, calendar_id: Optional[str], event: dict) -> str:
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
            response = await client.post(
                self._events_url(calendar_id),
                headers={"Authorization": f"Bearer {access_token}"},
                json=event,
            )
        return _check(response, "Outlook event create").json()["id"]

    async def update_event(self, access_token: str, calendar_id: Optional[str], event_id: str, event: dict) -> None:
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
            response = await client.patch(
                f"{self.GRAPH_API}/me/events/{event_id}",
                headers={"Authorization": f"Bearer {access_token}"},
                json=event,
            )
        _check(response, "Outlook event update")

    async def delete_event(self, access_token: str, calendar_id: Optional[str], event_id: str) -> None:
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
            response = await client.delete(
                f"{self.GRAPH_API}/me/events/{event_id}",
                headers={"Authorization": f"Bearer {access_token}"},
            )
        if response.status_code != 404:
            _check(response, "Outlook event delete")


PROVIDERS = {
    GoogleCalendarProvider.name: GoogleCalendarProvider(),
    OutlookCalendarProvider.name: OutlookCalendarProvider(),
}


def get_provider(name: str):
    return PROVIDERS.get(name)
