"""
Tests for the Mastodon collector
"""

import httpx

from region_pulse.collectors import mastodon
from region_pulse.models import Publisher

INSTANCE = "mastodon.online"

ACCOUNT = {
    "id": "42",
    "username": "bendobrown",
    "display_name": "Ben Dobrown",
    "url": f"https://{INSTANCE}/@bendobrown",
    "avatar": f"https://{INSTANCE}/avatars/42.png",
}

STATUSES = [
    {
        "id": "1001",
        "created_at": "2026-02-13T10:00:00.000Z",
        "visibility": "public",
        "url": f"https://{INSTANCE}/@bendobrown/1001",
        "content": "<p>Line one<br>Line two</p><p>Para &amp; more</p>",
        "account": ACCOUNT,
        "media_attachments": [
            {"type": "image", "url": "https://files/img.png", "preview_url": "https://files/small.png",
             "description": "Satellite image"},
        ],
        "reblog": None,
    },
    {
        "id": "1002",
        "created_at": "2026-02-13T09:00:00.000Z",
        "visibility": "private",
        "url": f"https://{INSTANCE}/@bendobrown/1002",
        "content": "<p>followers only</p>",
        "account": ACCOUNT,
    },
    {
        "id": "1003",
        "created_at": "2026-02-13T08:00:00.000Z",
        "visibility": "unlisted",
        "url": None,
        "content": "",
        "account": ACCOUNT,
        "reblog": {
            "id": "99",
            "url": "https://mastodon.social/@orig/99",
            "content": "<p>Drone footage from Kherson</p>",
            "account": {"username": "orig", "display_name": "Original Author",
                        "url": "https://mastodon.social/@orig"},
            "media_attachments": [
                {"type": "gifv", "url": "https://files/v.mp4", "preview_url": "https://files/p.png"},
            ],
        },
    },
]


def create_publisher(feed_url: str = f"https://{INSTANCE}/@bendobrown") -> Publisher:
    """Helper to create test publisher"""
    return Publisher(
        id="bendobrown",
        name="Ben Dobrown",
        platform="mastodon",
        feed_url=feed_url,
        tier="reporter"
    )


def respond(request: httpx.Request) -> httpx.Response:
    """模擬 instance API"""
    if request.url.path == "/api/v1/accounts/lookup":
        return httpx.Response(200, json=ACCOUNT)
    if request.url.path == "/api/v1/accounts/42/statuses":
        return httpx.Response(200, json=STATUSES)
    return httpx.Response(404)


def test_extract_account():
    assert mastodon.extract_account(f"https://{INSTANCE}/@bendobrown") == ("bendobrown", INSTANCE)
    assert mastodon.extract_account(f"@bendobrown@{INSTANCE}") == ("bendobrown", INSTANCE)
    assert mastodon.extract_account("bendobrown") is None


def test_parse_statuses_filters_visibility():
    items = mastodon.parse_statuses(STATUSES, "Ben Dobrown")

    assert [item.guid for item in items] == ["1001", "1003"]


def test_parse_status_html():
    """<br> 與段落轉成換行，entities 解碼"""
    item = mastodon.parse_status(STATUSES[0])

    assert item.description == "Line one\nLine two\n\nPara & more"
    assert item.link == f"https://{INSTANCE}/@bendobrown/1001"
    assert item.media[0].type == "image"
    assert item.media[0].alt == "Satellite image"
    assert item.repost_context is None


def test_parse_boost():
    """Boost 以原文為主，記錄原作者與 boost 帳號"""
    item = mastodon.parse_status(STATUSES[2])

    assert item.title == "Drone footage from Kherson"
    assert item.link == "https://mastodon.social/@orig/99"
    assert item.media[0].type == "video"
    assert item.repost_context.original_author == "Original Author"
    assert item.repost_context.original_handle == "orig@mastodon.social"
    assert item.repost_context.reposted_by == "Ben Dobrown"


def test_parse_statuses_non_list():
    assert mastodon.parse_statuses({"error": "oops"}) == []


def test_collect(run_adapter, recorder):
    handler = recorder(respond)

    result = run_adapter(mastodon.collect, create_publisher(), handler)

    assert len(result.items) == 2
    assert result.avatar_url == ACCOUNT["avatar"]

    lookup, statuses = handler.requests
    assert lookup.url.host == INSTANCE
    assert lookup.url.params["acct"] == "bendobrown"
    assert statuses.url.params["limit"] == "20"
    assert statuses.url.params["exclude_replies"] == "true"


def test_collect_unknown_account_is_cached(run_adapter, recorder, caches):
    handler = recorder(lambda request: httpx.Response(404, json={"error": "Record not found"}))
    publisher = create_publisher()

    assert run_adapter(mastodon.collect, publisher, handler).items == []
    assert caches.is_invalid(f"bendobrown@{INSTANCE}")

    run_adapter(mastodon.collect, publisher, handler)
    assert len(handler.requests) == 1


def test_collect_statuses_failure(run_adapter, recorder, caches):
    """lookup 成功但 statuses 失敗時回傳空結果，不標記 invalid"""
    def partial(request):
        if request.url.path == "/api/v1/accounts/lookup":
            return httpx.Response(200, json=ACCOUNT)
        return httpx.Response(500)

    result = run_adapter(mastodon.collect, create_publisher(), recorder(partial))

    assert result.items == []
    assert not caches.is_invalid(f"bendobrown@{INSTANCE}")
