import pytest
import responses

from saveany.parsers.twitter import TwitterParser, get_tweet_id

API = "https://api.fxtwitter.com/_/status/12345"
MEDIA = "https://pbs.twimg.com/media/abc.jpg?name=orig"


@pytest.fixture
def mocked():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


def test_get_tweet_id():
    assert get_tweet_id("https://x.com/someone/status/12345") == "12345"
    assert get_tweet_id("https://twitter.com/someone/status/777?s=20") == "777"
    assert get_tweet_id("https://x.com/someone") == ""


def test_can_handle():
    parser = TwitterParser()
    assert parser.can_handle("https://x.com/someone/status/12345")
    assert not parser.can_handle("https://example.com/someone/status/12345")


def test_name_and_configure():
    parser = TwitterParser()
    assert parser.name() == "twitter"
    parser.configure({"api_domain": "fx.example.com", "proxy": "http://localhost:8080"})
    assert parser.api_domain == "fx.example.com"
    assert parser.session.proxies["https"] == "http://localhost:8080"
    parser.configure({"api_domain": ""})
    assert parser.api_domain == "api.fxtwitter.com"
    parser.configure(None)
    assert parser.api_domain == "api.fxtwitter.com"


def test_configure_rejects_bad_proxy():
    with pytest.raises(ValueError):
        TwitterParser().configure({"proxy": "not a url"})


def test_parse(mocked):
    mocked.add(
        responses.GET,
        API,
        json={
            "code": 200,
            "message": "OK",
            "tweet": {
                "url": "https://x.com/someone/status/12345",
                "text": "hello",
                "author": {"name": "Someone"},
                "media": {"all": [{"url": MEDIA, "type": "photo"}]},
            },
        },
    )
    mocked.add(responses.HEAD, MEDIA, body="b" * 7, auto_calculate_content_length=True)

    item = TwitterParser().parse("https://x.com/someone/status/12345")

    assert item.site == "Twitter"
    assert item.title == "Tweet/12345"
    assert item.url == "https://x.com/someone/status/12345"
    assert item.description == "hello"
    assert item.author == "Someone"
    assert item.tags == []
    assert [(r.url, r.filename, r.size) for r in item.resources] == [(MEDIA, "abc.jpg", 7)]


def test_parse_uses_configured_domain(mocked):
    mocked.add(
        responses.GET,
        "https://fx.example.com/_/status/12345",
        json={"code": 404, "message": "NOT_FOUND"},
    )
    parser = TwitterParser()
    parser.configure({"api_domain": "fx.example.com"})
    with pytest.raises(RuntimeError, match="NOT_FOUND"):
        parser.parse("https://x.com/someone/status/12345")


def test_parse_without_media(mocked):
    mocked.add(responses.GET, API, json={"code": 200, "tweet": {"media": {"all": []}}})
    with pytest.raises(RuntimeError, match="no media found"):
        TwitterParser().parse("https://x.com/someone/status/12345")


def test_parse_http_error(mocked):
    mocked.add(responses.GET, API, status=500)
    with pytest.raises(RuntimeError, match="status code: 500"):
        TwitterParser().parse("https://x.com/someone/status/12345")


def test_parse_invalid_url():
    with pytest.raises(ValueError, match="invalid Twitter URL"):
        TwitterParser().parse("https://x.com/someone")