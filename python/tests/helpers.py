"""Test helpers for caller identity headers and common request payloads."""

from uuid import UUID

from playgroup.auth.middleware import ADMIN_HEADER, FID_HEADER, INTERNAL_HEADER, USER_ID_HEADER

from tests.fixtures import LONG_REVIEW_TEXT


def fid_headers(fid: int) -> dict[str, str]:
    """Headers the front end sends for a legacy Farcaster caller."""
    return {FID_HEADER: str(fid)}


def user_headers(user_id: UUID | str) -> dict[str, str]:
    """Headers the front end sends for a unified-user caller."""
    return {USER_ID_HEADER: str(user_id)}


def admin_headers(secret: str) -> dict[str, str]:
    return {ADMIN_HEADER: secret}


def internal_headers(secret: str) -> dict[str, str]:
    return {INTERNAL_HEADER: secret}


def album_payload(external_id: str, username: str = "tester", **overrides) -> dict:
    """JSON body for POST /cycles/{id}/submissions."""
    payload = {
        "external_id": external_id,
        "title": f"Album {external_id}",
        "artist": "Test Artist",
        "cover_url": "https://i.scdn.co/image/test",
        "external_url": f"https://open.spotify.com/album/{external_id}",
        "tracks": ["Intro", "Single", "Outro"],
        "genres": ["indie"],
        "username": username,
    }
    payload.update(overrides)
    return payload


def review_payload(rating: int = 4, username: str = "tester", **overrides) -> dict:
    """JSON body for POST /albums/{id}/reviews."""
    payload = {
        "username": username,
        "rating": rating,
        "text": LONG_REVIEW_TEXT,
        "favorite_track": "Single",
        "has_listened": True,
    }
    payload.update(overrides)
    return payload
