"""Fixture albums and review text.

Shared by tests and by scripts/seed_dev.py, which submits FIXTURE_ALBUMS
to the current cycle of a development database.
"""

from playgroup.schemas.album import SubmitAlbumRequest
from playgroup.schemas.review import SubmitReviewRequest

# =============================================================================
# Fixture Content
# =============================================================================

FIXTURE_SUBMITTER_FID = 1
FIXTURE_SUBMITTER_USERNAME = "playgroup"

FIXTURE_ALBUMS = [
    {
        "external_id": "53VKICyqCf91sVkTdFrzKX",
        "title": "Titanic Rising",
        "artist": "Weyes Blood",
        "external_url": "https://open.spotify.com/album/53VKICyqCf91sVkTdFrzKX",
        "tracks": ["A Lot's Gonna Change", "Andromeda", "Everyday", "Movies"],
        "genres": ["chamber pop", "art pop"],
    },
    {
        "external_id": "2Eyd0IjXoPDcLQcQ4H8tEM",
        "title": "Vespertine",
        "artist": "Björk",
        "external_url": "https://open.spotify.com/album/2Eyd0IjXoPDcLQcQ4H8tEM",
        "tracks": ["Hidden Place", "Cocoon", "It's Not Up to You", "Pagan Poetry"],
        "genres": ["art pop", "electronic"],
    },
    {
        "external_id": "3539EbNgIdEDGBKkUf4wno",
        "title": "Dummy",
        "artist": "Portishead",
        "external_url": "https://open.spotify.com/album/3539EbNgIdEDGBKkUf4wno",
        "tracks": ["Mysterons", "Sour Times", "Strangers", "Glory Box"],
        "genres": ["trip hop"],
    },
    {
        "external_id": "3mH6qwIy9crq0I9YQbOuDf",
        "title": "Blonde",
        "artist": "Frank Ocean",
        "external_url": "https://open.spotify.com/album/3mH6qwIy9crq0I9YQbOuDf",
        "tracks": ["Nikes", "Ivy", "Pink + White", "Self Control", "Nights"],
        "genres": ["r&b", "alternative r&b"],
    },
]

# Comfortably above MIN_REVIEW_LENGTH
LONG_REVIEW_TEXT = (
    "A patient record that rewards close listening; the second half opens up "
    "in ways the singles never hint at."
)

SHORT_REVIEW_TEXT = "Great record, loved it."


# =============================================================================
# Request Builders
# =============================================================================


def make_album_request(
    external_id: str, username: str = "tester", **overrides
) -> SubmitAlbumRequest:
    fields = {
        "external_id": external_id,
        "title": f"Album {external_id}",
        "artist": "Test Artist",
        "username": username,
    }
    fields.update(overrides)
    return SubmitAlbumRequest(**fields)


def make_review_request(
    rating: int = 4,
    text: str = LONG_REVIEW_TEXT,
    favorite_track: str | None = None,
    username: str = "tester",
    pfp: str | None = None,
) -> SubmitReviewRequest:
    return SubmitReviewRequest(
        username=username,
        pfp=pfp,
        rating=rating,
        text=text,
        favorite_track=favorite_track,
        has_listened=True,
    )
