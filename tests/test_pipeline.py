"""Tests for the upload pipeline client and upload-driven queue insertion."""

import json
import threading
from io import BytesIO

import httpx
import pytest
from PIL import Image

from caption_feed.core.errors import MutationFailure
from caption_feed.feed.schema import FeedItem
from caption_feed.feed.session import FeedSession
from caption_feed.pipeline.client import CaptionPipeline, sniff_content_type
from caption_feed.services.uploads import upload_and_insert

ALLOWED = ["image/jpeg", "image/png"]
PRESIGNED = "https://bucket.test/put/abc?sig=1"


def _png_bytes() -> bytes:
    buf = BytesIO()
    Image.new("RGB", (8, 8), (200, 30, 30)).save(buf, "PNG")
    return buf.getvalue()


def make_handler(calls, fail_step=None, captions=None):
    captions = [{"id": 900, "content": "me when the build is green"}] if captions is None else captions

    def handler(request):
        path = request.url.path
        if request.method == "PUT":
            step = "transfer"
        elif path.endswith("/generate-presigned-url"):
            step = "presign"
        elif path.endswith("/upload-image-from-url"):
            step = "register"
        else:
            step = "generate-captions"
        calls.append((step, request))
        if step == fail_step:
            return httpx.Response(500, json={"error": "nope"})
        if step == "presign":
            return httpx.Response(200, json={"presignedUrl": PRESIGNED, "cdnUrl": "https://cdn.test/abc.png"})
        if step == "transfer":
            return httpx.Response(200)
        if step == "register":
            return httpx.Response(200, json={"imageId": "img-new"})
        return httpx.Response(200, json=captions)

    return handler


def make_pipeline(handler):
    return CaptionPipeline("https://pipeline.test/api", "tok", transport=httpx.MockTransport(handler))


def make_session(n=5, cursor=0):
    items = [
        FeedItem(caption_id=f"c{i}", content=f"caption {i}", image_id=f"img{i}", image_url="https://cdn.test/x.png")
        for i in range(n)
    ]
    return FeedSession(voter_id="me", items=items, cursor=cursor)


def test_sniff_png():
    assert sniff_content_type(_png_bytes(), ALLOWED) == "image/png"


def test_sniff_rejects_non_images():
    with pytest.raises(MutationFailure) as exc:
        sniff_content_type(b"definitely not an image", ALLOWED)
    assert exc.value.step == "validate"


def test_sniff_rejects_disallowed_formats():
    with pytest.raises(MutationFailure):
        sniff_content_type(_png_bytes(), ["image/jpeg"])


def test_sniff_rejects_oversized_images(monkeypatch):
    buf = BytesIO()
    Image.new("RGB", (16, 16)).save(buf, "PNG")
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)
    with pytest.raises(MutationFailure) as exc:
        sniff_content_type(buf.getvalue(), ALLOWED)
    assert exc.value.step == "validate"


def test_upload_runs_four_steps_in_order():
    calls = []
    result = make_pipeline(make_handler(calls)).upload(_png_bytes(), "image/png", is_common_use=True)

    assert [step for step, _ in calls] == ["presign", "transfer", "register", "generate-captions"]
    presign_req, put_req, register_req, captions_req = (req for _, req in calls)
    assert json.loads(presign_req.content) == {"contentType": "image/png"}
    assert presign_req.headers["authorization"] == "Bearer tok"
    assert str(put_req.url) == PRESIGNED
    assert "authorization" not in put_req.headers
    assert put_req.headers["content-type"] == "image/png"
    assert json.loads(register_req.content) == {"imageUrl": "https://cdn.test/abc.png", "isCommonUse": True}
    assert json.loads(captions_req.content) == {"imageId": "img-new"}

    assert result.image_id == "img-new"
    assert result.captions[0].id == "900"


@pytest.mark.parametrize("step", ["presign", "transfer", "register", "generate-captions"])
def test_failed_step_stops_the_pipeline(step):
    calls = []
    with pytest.raises(MutationFailure) as exc:
        make_pipeline(make_handler(calls, fail_step=step)).upload(_png_bytes(), "image/png")
    assert exc.value.step == step
    assert calls[-1][0] == step


def test_upload_inserts_new_item_at_front():
    session = make_session(5, cursor=2)
    item = upload_and_insert(make_pipeline(make_handler([])), session, _png_bytes(), ALLOWED)

    assert len(session.items) == 6
    assert session.items[0] is item
    assert session.cursor == 0
    assert item.caption_id == "900"
    assert item.image_url == "https://cdn.test/abc.png"
    assert (item.upvotes, item.downvotes, item.my_vote) == (0, 0, None)


def test_upload_without_captions_leaves_session_alone():
    session = make_session(3, cursor=1)
    with pytest.raises(MutationFailure):
        upload_and_insert(make_pipeline(make_handler([], captions=[])), session, _png_bytes(), ALLOWED)
    assert len(session.items) == 3
    assert session.cursor == 1


def test_bad_image_never_reaches_the_pipeline():
    calls = []
    session = make_session(2)
    with pytest.raises(MutationFailure):
        upload_and_insert(make_pipeline(make_handler(calls)), session, b"garbage", ALLOWED)
    assert calls == []


def test_upload_waits_for_in_flight_vote():
    session = make_session(3, cursor=0)
    pipeline = make_pipeline(make_handler([]))
    done = []

    # stands in for cast_vote holding the session mid-vote
    session.lock.acquire()
    worker = threading.Thread(
        target=lambda: done.append(upload_and_insert(pipeline, session, _png_bytes(), ALLOWED))
    )
    worker.start()
    worker.join(0.5)
    assert worker.is_alive()
    assert len(session.items) == 3

    session.advance()
    session.lock.release()
    worker.join(5)

    assert len(done) == 1
    assert session.cursor == 0
    assert session.current.caption_id == "900"
    assert [i.caption_id for i in session.items] == ["900", "c1", "c2", "c0"]
