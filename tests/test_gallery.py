""" Tests for the gallery session and the multi-source fan-out """

import asyncio
import random

import pytest

from conftest import FakeService, make_source, run
from booruhub.errors import NetworkUnavailableError, ServerError
from booruhub.services.booru import BooruAPIType, ContentRating, Post
from booruhub.services.gallery import (
    GallerySession,
    SortOrder,
    fetch_from_all_sources,
    filter_visible,
    merge_posts,
)


def posts(*ids, score=None, file_url=None):
    return [
        Post(id=i, score=score if score is not None else i, file_url=file_url or f"https://cdn.example/{i}.jpg")
        for i in ids
    ]


class Preferences:
    def __init__(self, explicit=False, blacklist=()):
        self.explicit = explicit
        self.blacklist = set(blacklist)

    def should_show(self, rating):
        return self.explicit or rating is not ContentRating.explicit

    def contains_blacklisted_tag(self, tags):
        return any(tag in self.blacklist for tag in tags)


# Merge / fan-out

def test_merge_drops_duplicate_pairs_and_sorts_by_score():
    shared = Post(id=1, score=5, file_url="https://a/1.jpg")
    batches = [
        [shared, Post(id=2, score=50, file_url="https://a/2.jpg")],
        [Post(id=1, score=5, file_url="https://a/1.jpg"), Post(id=1, score=9, file_url="https://b/1.jpg")],
    ]
    merged = merge_posts(batches)

    assert [(p.id, p.file_url) for p in merged] == [
        (2, "https://a/2.jpg"),
        (1, "https://b/1.jpg"),
        (1, "https://a/1.jpg"),
    ]
    assert merged[2] is shared
    assert len({(p.id, p.file_url) for p in merged}) == len(merged)


def test_merge_is_stable_for_equal_scores():
    merged = merge_posts([posts(1, 2, score=3), posts(3, score=3)])
    assert [p.id for p in merged] == [1, 2, 3]


def test_fan_out_stamps_source_and_merges():
    a = make_source("A", base_url="https://a.example")
    b = make_source("B", BooruAPIType.gelbooru, "https://b.example")
    service = FakeService({"A": posts(1, 2), "B": [Post(id=1, score=100, file_url="https://b/1.jpg")]})

    merged = run(fetch_from_all_sources(service, [a, b], tags="cat", limit=20))

    assert [(p.id, p.source_id) for p in merged] == [(1, "B"), (2, "A"), (1, "A")]
    assert merged[0].source_base_url == "https://b.example"
    assert sorted(service.calls) == [("A", "cat", 1, 20), ("B", "cat", 1, 20)]


def test_fan_out_partial_failure_returns_successes():
    service = FakeService({"A": posts(1), "B": ServerError(503)})
    merged = run(fetch_from_all_sources(service, [make_source("A"), make_source("B")]))
    assert [p.id for p in merged] == [1]


def test_fan_out_total_failure_raises_first_error():
    first = NetworkUnavailableError()
    service = FakeService({"A": first, "B": ServerError(500)})
    with pytest.raises(NetworkUnavailableError) as info:
        run(fetch_from_all_sources(service, [make_source("A"), make_source("B")]))
    assert info.value is first


def test_fan_out_no_sources():
    assert run(fetch_from_all_sources(FakeService(), [])) == []


def test_fan_out_empty_results_is_not_an_error():
    service = FakeService({"A": [], "B": ServerError(500)})
    assert run(fetch_from_all_sources(service, [make_source("A"), make_source("B")])) == []


# Single-source paging

def paged(page_size, pages):
    """Result factory that serves `pages` full pages and then an empty one."""
    def result(page):
        if page > pages:
            return []
        start = (page - 1) * page_size
        return posts(*range(start + 1, start + page_size + 1))
    return result


def test_load_posts_first_page():
    source = make_source("A")
    service = FakeService({"A": paged(3, 2)})
    session = GallerySession(service, posts_per_page=3)

    run(session.load_posts(source, tags="cat"))

    assert [p.id for p in session.posts] == [1, 2, 3]
    assert session.has_more_pages
    assert not session.is_loading
    assert session.error is None
    assert service.calls == [("A", "cat", 1, 3)]


def test_short_page_means_no_more_pages():
    session = GallerySession(FakeService({"A": posts(1, 2)}), posts_per_page=3)
    run(session.load_posts(make_source("A")))
    assert not session.has_more_pages


def test_empty_tags_are_sent_as_none():
    service = FakeService({"A": []})
    run(GallerySession(service, posts_per_page=3).load_posts(make_source("A"), tags=""))
    assert service.calls[0][1] is None


def test_load_error_clears_posts():
    results = {"A": posts(1, 2, 3)}
    service = FakeService(results)
    session = GallerySession(service, posts_per_page=3)
    source = make_source("A")
    run(session.load_posts(source))

    results["A"] = ServerError(500)
    run(session.load_posts(source))

    assert session.posts == []
    assert isinstance(session.error, ServerError)
    assert not session.is_loading


def test_load_more_appends_next_page():
    service = FakeService({"A": paged(3, 2)})
    session = GallerySession(service, posts_per_page=3)
    run(session.load_posts(make_source("A")))

    run(session.load_more_posts())
    assert [p.id for p in session.posts] == [1, 2, 3, 4, 5, 6]
    assert session.current_page == 2

    run(session.load_more_posts())
    assert len(session.posts) == 6
    assert not session.has_more_pages

    run(session.load_more_posts())
    assert len(service.calls) == 3


def test_load_more_skips_ids_already_held():
    pages = {1: posts(1, 2, 3), 2: posts(3, 4, 5)}
    session = GallerySession(FakeService({"A": lambda page: pages[page]}), posts_per_page=3)
    run(session.load_posts(make_source("A")))
    run(session.load_more_posts())
    assert [p.id for p in session.posts] == [1, 2, 3, 4, 5]


def test_load_more_error_keeps_posts_and_page():
    state = {"fail": False}

    def result(page):
        if page > 1 and state["fail"]:
            return ServerError(502)
        return posts(*range(page * 10, page * 10 + 3))

    session = GallerySession(FakeService({"A": result}), posts_per_page=3)
    run(session.load_posts(make_source("A")))
    state["fail"] = True

    run(session.load_more_posts())
    assert len(session.posts) == 3
    assert session.current_page == 1
    assert isinstance(session.error, ServerError)
    assert not session.is_loading_more

    state["fail"] = False
    run(session.load_more_posts())
    assert session.current_page == 2
    assert len(session.posts) == 6


def test_load_more_is_disabled_for_multi_source():
    service = FakeService({"A": posts(1, 2, 3)})
    session = GallerySession(service, posts_per_page=3)
    run(session.load_posts_from_all_sources([make_source("A")]))
    run(session.load_more_posts())
    assert len(service.calls) == 1
    assert not session.has_more_pages


def test_multi_source_uses_enabled_sources_only():
    service = FakeService({"A": posts(1), "B": posts(2)})
    session = GallerySession(service, multi_source_limit=5)
    run(session.load_posts_from_all_sources([make_source("A"), make_source("B", is_enabled=False)], tags="x"))

    assert service.calls == [("A", "x", 1, 5)]
    assert session.is_multi_source_search
    assert [p.source_id for p in session.posts] == ["A"]


def test_multi_source_with_nothing_enabled_is_noop():
    session = GallerySession(FakeService(), posts_per_page=3)
    run(session.load_posts_from_all_sources([make_source("A", is_enabled=False)]))
    assert session.posts == []
    assert not session.is_multi_source_search


def test_refresh_repeats_last_query():
    service = FakeService({"A": posts(1)})
    session = GallerySession(service, posts_per_page=3)
    run(session.load_posts(make_source("A"), tags="cat"))
    run(session.refresh())
    assert service.calls == [("A", "cat", 1, 3), ("A", "cat", 1, 3)]


def test_should_load_more():
    session = GallerySession(FakeService({"A": posts(1, 2, 3)}), posts_per_page=3)
    run(session.load_posts(make_source("A")))
    assert session.should_load_more(session.posts[-1])
    assert not session.should_load_more(session.posts[0])


# Sorting

def test_sort_orders():
    session = GallerySession(FakeService({"A": [Post(id=1, score=5), Post(id=2, score=50), Post(id=3, score=1)]}),
                             posts_per_page=3, rng=random.Random(7))
    run(session.load_posts(make_source("A")))
    assert [p.id for p in session.posts] == [1, 2, 3]

    session.set_sort_order(SortOrder.score)
    assert [p.id for p in session.posts] == [2, 1, 3]

    session.set_sort_order(SortOrder.random)
    assert sorted(p.id for p in session.posts) == [1, 2, 3]

    session.set_sort_order(SortOrder.newest)
    assert [p.id for p in session.posts] == [1, 2, 3]


def test_random_reshuffles_when_selected_again():
    session = GallerySession(FakeService({"A": posts(*range(1, 21))}), posts_per_page=20, rng=random.Random(1))
    run(session.load_posts(make_source("A")))
    session.set_sort_order(SortOrder.random)
    first = [p.id for p in session.posts]
    session.set_sort_order("random")
    second = [p.id for p in session.posts]
    assert sorted(first) == sorted(second) == list(range(1, 21))
    assert first != second


def test_sort_order_survives_new_load():
    session = GallerySession(FakeService({"A": [Post(id=1, score=1), Post(id=2, score=9)]}), posts_per_page=3)
    session.set_sort_order(SortOrder.score)
    run(session.load_posts(make_source("A")))
    assert [p.id for p in session.posts] == [2, 1]


# Supersession

def test_stale_response_is_dropped():
    async def scenario():
        release_old = asyncio.Event()

        class SlowService:
            async def fetch_posts(self, source, tags=None, page=1, limit=40):
                if tags == "old":
                    await release_old.wait()
                    return posts(100)
                return posts(1)

        session = GallerySession(SlowService(), posts_per_page=3)
        source = make_source("A")
        old = asyncio.create_task(session.load_posts(source, tags="old"))
        await asyncio.sleep(0)
        await session.load_posts(source, tags="new")
        release_old.set()
        await old
        return session

    session = run(scenario())
    assert [p.id for p in session.posts] == [1]
    assert session.current_tags == "new"
    assert not session.is_loading


# Visibility

def test_filter_visible():
    items = [
        Post(id=1, rating=ContentRating.safe, tag_string="cat"),
        Post(id=2, rating=ContentRating.explicit, tag_string="cat"),
        Post(id=3, rating=ContentRating.safe, tag_string="gore cat"),
    ]
    assert [p.id for p in filter_visible(items, Preferences(blacklist={"gore"}))] == [1]
    assert [p.id for p in filter_visible(items, Preferences(explicit=True))] == [1, 2, 3]
    assert filter_visible(items, None) == items
