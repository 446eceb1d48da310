"""Tests for the crawl request value model."""

import dataclasses

import pytest

from browsercrawler.crawler.exceptions import InvalidRequestError
from browsercrawler.crawler.request import (
    MAX_DEPTH_CEILING,
    CrawlCandidate,
    CrawlRequest,
    CrawlRequestBuilder,
    get_top_private_domain,
)


class TestCrawlRequestBuilder:
    """Test cases for CrawlRequestBuilder."""

    def test_defaults(self):
        request = CrawlRequestBuilder("https://example.com/page").build()

        assert request.url == "https://example.com/page"
        assert request.priority == 0
        assert request.depth == 0
        assert request.parent_url is None
        assert request.metadata is None

    def test_priority_and_metadata(self):
        request = (CrawlRequestBuilder("https://example.com/")
                   .set_priority(-3)
                   .set_metadata({'category': 'news'})
                   .build())

        assert request.priority == -3
        assert request.metadata == {'category': 'news'}

    @pytest.mark.parametrize("url", [
        "/relative/path",
        "example.com/page",
        "ftp://example.com/file",
        "mailto:someone@example.com",
        "https://",
        "https://example.com:99999/",
        "https://exa mple.com/",
        "",
        None,
    ])
    def test_rejects_invalid_urls(self, url):
        with pytest.raises(InvalidRequestError):
            CrawlRequestBuilder(url).build()

    def test_rejects_non_integer_priority(self):
        with pytest.raises(InvalidRequestError):
            CrawlRequestBuilder("https://example.com/").set_priority("high").build()
        with pytest.raises(InvalidRequestError):
            CrawlRequestBuilder("https://example.com/").set_priority(True).build()

    def test_parent_derives_depth_and_propagates(self):
        parent = (CrawlRequestBuilder("https://example.com/")
                  .set_priority(7)
                  .set_metadata({'source': 'seed'})
                  .build())

        child = CrawlRequestBuilder("https://example.com/child").set_parent(parent).build()

        assert child.depth == 1
        assert child.parent_url == "https://example.com/"
        assert child.priority == 7
        assert child.metadata == {'source': 'seed'}

    def test_explicit_values_override_parent(self):
        parent = CrawlRequestBuilder("https://example.com/").set_priority(7).set_metadata({'a': 1}).build()

        child = (CrawlRequestBuilder("https://example.com/child")
                 .set_parent(parent)
                 .set_priority(1)
                 .set_metadata(None)
                 .build())

        assert child.priority == 1
        assert child.metadata is None

    def test_parent_can_be_candidate(self):
        parent = CrawlRequest(url="https://example.com/", depth=4)
        candidate = CrawlCandidate.from_request(parent)

        child = CrawlRequestBuilder("https://example.com/x").set_parent(candidate).build()

        assert child.depth == 5

    def test_depth_ceiling(self):
        parent = CrawlRequest(url="https://example.com/", depth=MAX_DEPTH_CEILING)

        with pytest.raises(InvalidRequestError):
            CrawlRequestBuilder("https://example.com/deeper").set_parent(parent).build()

    def test_metadata_is_copied(self):
        metadata = {'tags': ['a']}
        request = CrawlRequestBuilder("https://example.com/").set_metadata(metadata).build()
        metadata['tags'].append('b')

        assert request.metadata == {'tags': ['a']}


class TestCrawlRequest:
    """Test cases for CrawlRequest."""

    def test_is_immutable(self):
        request = CrawlRequest(url="https://example.com/")

        with pytest.raises(dataclasses.FrozenInstanceError):
            request.priority = 5

    def test_dict_round_trip(self):
        request = CrawlRequest(
            url="https://example.com/a",
            priority=2,
            depth=3,
            parent_url="https://example.com/",
            metadata={'k': [1, 2]}
        )

        assert CrawlRequest.from_dict(request.to_dict()) == request

    def test_from_dict_rejects_bad_data(self):
        with pytest.raises(InvalidRequestError):
            CrawlRequest.from_dict({'url': 'not a url'})
        with pytest.raises(InvalidRequestError):
            CrawlRequest.from_dict({'url': 'https://example.com/', 'depth': -1})
        with pytest.raises(InvalidRequestError):
            CrawlRequest.from_dict({'priority': 1})


class TestCrawlCandidate:
    """Test cases for CrawlCandidate and domain extraction."""

    def test_projection(self):
        request = CrawlRequest(url="https://www.example.co.uk/page", priority=4, depth=2,
                               metadata={'x': 1})
        candidate = CrawlCandidate.from_request(request)

        assert candidate.url == request.url
        assert candidate.priority == 4
        assert candidate.crawl_depth == 2
        assert candidate.metadata == {'x': 1}
        assert candidate.top_private_domain == "example.co.uk"

    @pytest.mark.parametrize("url,expected", [
        ("https://blog.example.com/post", "example.com"),
        ("https://WWW.Example.COM/", "example.com"),
        ("http://a.example/", "a.example"),
        ("http://127.0.0.1:8080/", "127.0.0.1"),
        ("http://localhost/", "localhost"),
    ])
    def test_top_private_domain(self, url, expected):
        assert get_top_private_domain(url) == expected
