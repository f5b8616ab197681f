"""Tests for the review ledger and cached album stats."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
from sqlalchemy import text
from sqlalchemy.orm import Session

from playgroup.auth.identity import LegacyIdentity, UserIdentity
from playgroup.errors import (
    ApiErrorCode,
    AuthenticationRequiredError,
    ConflictError,
    InvalidRequestError,
    NotFoundError,
)
from playgroup.services.reviews import (
    default_pfp_url,
    get_album_stats,
    get_user_review,
    list_album_reviews,
    round_rating,
    submit_review,
)
from tests.factories import create_test_album, create_test_cycle, random_fid
from tests.fixtures import SHORT_REVIEW_TEXT, make_review_request


@pytest.fixture
def album_id(db_session: Session):
    cycle_id = create_test_cycle(db_session, phase="listening")
    return create_test_album(
        db_session,
        cycle_id,
        LegacyIdentity(random_fid()),
        status="selected",
        tracks=["Intro", "Single", "Outro"],
    )


class TestRoundRating:
    @pytest.mark.parametrize(
        "value,expected",
        [(4.25, "4.3"), (4.0, "4.0"), (3.333, "3.3"), (4.35, "4.4"), (None, None)],
    )
    def test_half_up_to_one_decimal(self, value, expected):
        result = round_rating(value)
        assert (str(result) if result is not None else None) == expected


class TestSubmitReview:
    def test_review_recorded(self, db_session: Session, album_id):
        reviewer = LegacyIdentity(random_fid())

        review = submit_review(
            db_session,
            album_id,
            reviewer,
            make_review_request(rating=5, favorite_track="Single", username="alice"),
        )

        assert review.album_id == album_id
        assert review.reviewer_fid == reviewer.fid
        assert review.reviewer_user_id is None
        assert review.username == "alice"
        assert review.rating == 5
        assert review.favorite_track == "Single"
        assert review.has_listened is True
        assert review.days_ago == 0

    def test_missing_pfp_falls_back_to_generated_avatar(self, db_session: Session, album_id):
        reviewer = LegacyIdentity(random_fid())

        review = submit_review(db_session, album_id, reviewer, make_review_request())

        assert review.pfp == default_pfp_url(str(reviewer.fid))
        assert review.pfp.startswith("https://api.dicebear.com/9.x/lorelei/svg?seed=")

    def test_explicit_pfp_is_kept(self, db_session: Session, album_id):
        review = submit_review(
            db_session,
            album_id,
            UserIdentity(uuid4()),
            make_review_request(pfp="https://cdn.example.com/me.png"),
        )

        assert review.pfp == "https://cdn.example.com/me.png"

    def test_stats_recomputed_after_each_review(self, db_session: Session, album_id):
        for rating in (4, 5, 3):
            submit_review(
                db_session, album_id, LegacyIdentity(random_fid()), make_review_request(rating)
            )

        stats = get_album_stats(db_session, album_id)
        assert stats.avg_rating == 4.0
        assert stats.total_reviews == 3

        submit_review(db_session, album_id, UserIdentity(uuid4()), make_review_request(5))

        stats = get_album_stats(db_session, album_id)
        assert stats.avg_rating == 4.3
        assert stats.total_reviews == 4

    def test_most_loved_track(self, db_session: Session, album_id):
        for track in ("Single", "Intro", "Single", None):
            submit_review(
                db_session,
                album_id,
                LegacyIdentity(random_fid()),
                make_review_request(favorite_track=track),
            )

        stats = get_album_stats(db_session, album_id)

        assert stats.most_loved_track == "Single"
        assert stats.most_loved_track_votes == 2

    def test_no_favorites_means_no_most_loved_track(self, db_session: Session, album_id):
        submit_review(db_session, album_id, LegacyIdentity(random_fid()), make_review_request())

        stats = get_album_stats(db_session, album_id)

        assert stats.most_loved_track is None
        assert stats.most_loved_track_votes == 0

    def test_short_text_rejected(self, db_session: Session, album_id):
        with pytest.raises(InvalidRequestError) as exc_info:
            submit_review(
                db_session,
                album_id,
                LegacyIdentity(random_fid()),
                make_review_request(text=SHORT_REVIEW_TEXT),
            )

        assert exc_info.value.code == ApiErrorCode.E_REVIEW_TOO_SHORT

    def test_padding_does_not_count_towards_length(self, db_session: Session, album_id):
        padded = SHORT_REVIEW_TEXT + " " * 80

        with pytest.raises(InvalidRequestError) as exc_info:
            submit_review(
                db_session, album_id, LegacyIdentity(random_fid()), make_review_request(text=padded)
            )

        assert exc_info.value.code == ApiErrorCode.E_REVIEW_TOO_SHORT

    @pytest.mark.parametrize("rating", [0, 6, -1])
    def test_out_of_range_rating_rejected(self, db_session: Session, album_id, rating: int):
        with pytest.raises(InvalidRequestError) as exc_info:
            submit_review(
                db_session, album_id, LegacyIdentity(random_fid()), make_review_request(rating)
            )

        assert exc_info.value.code == ApiErrorCode.E_INVALID_RATING
        assert get_album_stats(db_session, album_id).total_reviews == 0

    def test_second_review_rejected(self, db_session: Session, album_id):
        reviewer = UserIdentity(uuid4())
        submit_review(db_session, album_id, reviewer, make_review_request(4))

        with pytest.raises(ConflictError) as exc_info:
            submit_review(db_session, album_id, reviewer, make_review_request(1))

        assert exc_info.value.code == ApiErrorCode.E_ALREADY_REVIEWED
        stats = get_album_stats(db_session, album_id)
        assert stats.total_reviews == 1
        assert stats.avg_rating == 4.0

    def test_unknown_album(self, db_session: Session):
        with pytest.raises(NotFoundError) as exc_info:
            submit_review(db_session, uuid4(), LegacyIdentity(random_fid()), make_review_request())

        assert exc_info.value.code == ApiErrorCode.E_ALBUM_NOT_FOUND

    def test_anonymous_caller_rejected(self, db_session: Session, album_id):
        with pytest.raises(AuthenticationRequiredError):
            submit_review(db_session, album_id, None, make_review_request())


class TestReviewReads:
    def test_reviews_listed_newest_first(self, db_session: Session, album_id):
        first = submit_review(
            db_session, album_id, LegacyIdentity(random_fid()), make_review_request(3)
        )
        second = submit_review(
            db_session, album_id, LegacyIdentity(random_fid()), make_review_request(5)
        )

        reviews = list_album_reviews(db_session, album_id)

        assert [r.id for r in reviews] == [second.id, first.id]

    def test_days_ago_relative_to_now(self, db_session: Session, album_id):
        review = submit_review(
            db_session, album_id, LegacyIdentity(random_fid()), make_review_request()
        )
        db_session.execute(
            text("UPDATE reviews SET created_at = :at WHERE id = :id"),
            {"at": datetime(2091, 6, 1, tzinfo=UTC), "id": review.id},
        )
        db_session.expire_all()

        reviews = list_album_reviews(db_session, album_id, now=datetime(2091, 6, 4, tzinfo=UTC))

        assert reviews[0].days_ago == 3

    def test_unknown_album_has_no_reviews(self, db_session: Session):
        assert list_album_reviews(db_session, uuid4()) == []

    def test_get_user_review(self, db_session: Session, album_id):
        reviewer = LegacyIdentity(random_fid())
        submitted = submit_review(db_session, album_id, reviewer, make_review_request())

        found = get_user_review(db_session, album_id, reviewer)

        assert found.id == submitted.id
        assert get_user_review(db_session, album_id, LegacyIdentity(random_fid())) is None

    def test_user_review_matches_on_identity_scheme(self, db_session: Session, album_id):
        fid = random_fid()
        submit_review(db_session, album_id, LegacyIdentity(fid), make_review_request())

        assert get_user_review(db_session, album_id, UserIdentity(uuid4())) is None

    def test_stats_of_unreviewed_album(self, db_session: Session, album_id):
        stats = get_album_stats(db_session, album_id)

        assert stats.avg_rating is None
        assert stats.total_reviews == 0

    def test_stats_of_unknown_album(self, db_session: Session):
        with pytest.raises(NotFoundError):
            get_album_stats(db_session, uuid4())

    def test_review_window_is_not_time_limited(self, db_session: Session):
        cycle_id = create_test_cycle(
            db_session, start_date=datetime(2091, 1, 1, tzinfo=UTC) - timedelta(days=60)
        )
        old_album = create_test_album(db_session, cycle_id, LegacyIdentity(random_fid()))

        review = submit_review(
            db_session, old_album, LegacyIdentity(random_fid()), make_review_request()
        )

        assert review.album_id == old_album
