"""Tests for building, advancing and splicing feed sessions."""

import random
from collections import Counter

import pytest

from caption_feed.feed.schema import CaptionCandidate, FeedItem, Image, Vote, VoteOutcome
from caption_feed.feed.session import (
    FeedSession,
    build_session,
    decide_vote,
    insert_item,
    record_vote,
)


def make_candidate(cid, image_id, url="https://cdn.test/img.png", votes=()):
    image = None if image_id is None else Image(id=image_id, url=url)
    return CaptionCandidate(
        id=cid, image_id=image_id, content=f"caption {cid}", image=image, votes=list(votes)
    )


def make_vote(caption_id, profile_id, value):
    return Vote(caption_id=caption_id, profile_id=profile_id, vote_value=value)


def make_item(cid, image_id="img"):
    return FeedItem(caption_id=cid, content=cid, image_id=image_id, image_url="https://cdn.test/x.png")


def test_first_caption_per_image_in_input_order():
    cands = [
        make_candidate("c1", "A"),
        make_candidate("c2", "A"),
        make_candidate("c3", "B"),
        make_candidate("c4", "A"),
        make_candidate("c5", "B"),
    ]
    session = build_session(cands, "me", max_per_image=1)
    assert [i.caption_id for i in session.items] == ["c1", "c3"]
    assert session.cursor == 0


def test_two_per_image_allows_one_repeat():
    cands = [
        make_candidate("c1", "A"),
        make_candidate("c2", "A"),
        make_candidate("c3", "B"),
        make_candidate("c4", "A"),
        make_candidate("c5", "B"),
    ]
    session = build_session(cands, "me", max_per_image=2)
    assert [i.caption_id for i in session.items] == ["c1", "c2", "c3", "c5"]


def test_stops_at_max_items():
    cands = [make_candidate(f"c{n}", f"img{n}") for n in range(50)]
    session = build_session(cands, "me", max_items=30)
    assert len(session.items) == 30
    assert session.items[-1].caption_id == "c29"


@pytest.mark.parametrize("max_per_image", [1, 2])
def test_caps_hold_for_random_pools(max_per_image):
    rng = random.Random(7)
    for _ in range(20):
        cands = [
            make_candidate(f"c{n}", f"img{rng.randint(0, 12)}")
            for n in range(rng.randint(0, 120))
        ]
        session = build_session(cands, "me", max_items=30, max_per_image=max_per_image)
        assert len(session.items) <= 30
        per_image = Counter(i.image_id for i in session.items)
        assert all(n <= max_per_image for n in per_image.values())


def test_candidates_without_image_or_url_are_skipped():
    cands = [
        make_candidate("c1", None),
        make_candidate("c2", "A", url=None),
        make_candidate("c3", "B", url=""),
        make_candidate("c4", "C"),
    ]
    session = build_session(cands, "me")
    assert [i.caption_id for i in session.items] == ["c4"]


def test_counts_and_own_vote():
    votes = [
        make_vote("c1", "me", -1),
        make_vote("c1", "p2", 1),
        make_vote("c1", "p3", 1),
        make_vote("c1", "p4", -1),
    ]
    session = build_session([make_candidate("c1", "A", votes=votes), make_candidate("c2", "B")], "me")
    first, second = session.items
    assert (first.upvotes, first.downvotes, first.my_vote) == (2, 2, -1)
    assert (second.upvotes, second.downvotes, second.my_vote) == (0, 0, None)


def test_empty_candidates_give_exhausted_session():
    session = build_session([], "me")
    assert session.items == []
    assert session.exhausted
    assert session.current is None


def test_shuffle_keeps_the_same_items():
    cands = [make_candidate(f"c{n}", f"img{n}") for n in range(10)]
    plain = build_session(cands, "me")
    a = build_session(cands, "me", shuffle=True, rng=random.Random(3))
    b = build_session(cands, "me", shuffle=True, rng=random.Random(3))
    assert [i.caption_id for i in a.items] == [i.caption_id for i in b.items]
    assert sorted(i.caption_id for i in a.items) == sorted(i.caption_id for i in plain.items)


def test_advance_never_passes_the_end():
    session = FeedSession(voter_id="me", items=[make_item("c1")])
    session.advance()
    assert session.exhausted
    session.advance()
    assert session.cursor == 1


def test_decide_vote_branches():
    assert decide_vote(None, 1) is VoteOutcome.INSERTED
    assert decide_vote(1, 1) is VoteOutcome.RETRACTED
    assert decide_vote(-1, 1) is VoteOutcome.UPDATED
    with pytest.raises(ValueError):
        decide_vote(None, 0)


def test_record_vote_updates_counts_and_advances():
    session = FeedSession(voter_id="me", items=[make_item("c1"), make_item("c2")])
    record_vote(session, "c1", VoteOutcome.INSERTED, 1)
    item = session.items[0]
    assert (item.upvotes, item.downvotes, item.my_vote) == (1, 0, 1)
    assert session.cursor == 1

    record_vote(session, "c1", VoteOutcome.UPDATED, -1)
    assert (item.upvotes, item.downvotes, item.my_vote) == (0, 1, -1)

    record_vote(session, "c1", VoteOutcome.RETRACTED, -1)
    assert (item.upvotes, item.downvotes, item.my_vote) == (0, 0, None)
    assert session.cursor == 2


def test_insert_puts_new_item_first_and_resets_cursor():
    old = [make_item(f"c{n}") for n in range(5)]
    session = FeedSession(voter_id="me", items=list(old), cursor=2)
    new = make_item("fresh", image_id="new-img")

    insert_item(session, new)

    assert len(session.items) == 6
    assert session.items[0] is new
    assert session.cursor == 0
    assert session.current is new
    # unseen items follow in their original order
    assert [i.caption_id for i in session.items[1:4]] == ["c2", "c3", "c4"]


def test_insert_revives_exhausted_session():
    session = FeedSession(voter_id="me", items=[make_item("c1")], cursor=1)
    assert session.exhausted
    insert_item(session, make_item("fresh"))
    assert not session.exhausted
    assert session.current.caption_id == "fresh"
