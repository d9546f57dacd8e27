"""Tests for MappedStore: per-key listings sharing the overlay logic."""

import asyncio

import pytest

from refstore import EntityStore, MappedStore


def plain_reviews(book_id, page):
    return {
        "page": page,
        "totalPages": 0,
        "totalSize": 0,
        "content": [f"{book_id}: Item 1-{page}", f"{book_id}: Item 2-{page}"],
    }


def keyed_reviews(key_field):
    def lister(book_id, page):
        return {
            "page": page,
            "totalPages": 2,
            "totalSize": 4,
            "content": [
                {key_field: f"{book_id}: 1-{page}", "title": f"{book_id}: Item 1-{page}"},
                {key_field: f"{book_id}: 2-{page}", "title": f"{book_id}: Item 2-{page}"},
            ],
        }

    return lister


class TestAccumulation:
    @pytest.mark.asyncio
    async def test_concat_new_pages_per_key(self):
        store = MappedStore(plain_reviews)
        observed = store.get_observable_items("Dracula")

        assert observed.get() is None
        await store.list("Gargantua")
        assert observed.get() is None
        await store.list("Dracula")
        assert len(observed.get().content) == 2
        await store.list_more("Dracula")
        await store.list_more("Dracula")
        await store.list_more("Dracula")
        assert len(observed.get().content) == 8
        assert observed.get().content[7] == "Dracula: Item 2-3"
        assert len(store.get_observable_items("Gargantua").get().content) == 2
        await store.list("Dracula")
        assert len(observed.get().content) == 2
        store.clear()
        assert observed.get() is None

    @pytest.mark.asyncio
    async def test_list_more_on_unknown_key_lists(self):
        store = MappedStore(plain_reviews)
        await store.list_more("Dracula")
        assert store.get_observable_items("Dracula").get().content == ["Dracula: Item 1-0", "Dracula: Item 2-0"]

    @pytest.mark.asyncio
    async def test_reading_items_per_key_leaves_no_observers(self):
        store = MappedStore(plain_reviews)
        await store.list("Dracula")
        for _ in range(500):
            assert len(store.get_observable_items("Dracula").get().content) == 2
            assert store.get_fetching("Dracula").get() is False
        assert len(store._pages._observers) == 0
        assert len(store._fetching._observers) == 0


class TestGuards:
    @pytest.mark.asyncio
    async def test_keys_load_independently(self):
        release = asyncio.Event()
        calls = []

        async def lister(book_id, page):
            calls.append((book_id, page))
            if book_id == "slow":
                await release.wait()
            return plain_reviews(book_id, page)

        store = MappedStore(lister)
        slow = asyncio.create_task(store.list("slow"))
        await asyncio.sleep(0)
        assert store.get_fetching("slow").get() is True
        assert store.get_fetching("fast").get() is False

        await store.list("slow")  # dropped
        await store.list("fast")
        assert store.get_observable_items("fast").get() is not None
        assert store.get_observable_items("slow").get() is None

        release.set()
        await slow
        assert calls == [("slow", 0), ("fast", 0)]
        assert store.get_fetching("slow").get() is False

    @pytest.mark.asyncio
    async def test_fetching_more_per_key(self):
        release = asyncio.Event()

        async def lister(book_id, page):
            if page > 0:
                await release.wait()
            return plain_reviews(book_id, page)

        store = MappedStore(lister)
        await store.list("a")
        await store.list("b")
        more = asyncio.create_task(store.list_more("a"))
        await asyncio.sleep(0)
        assert store.get_fetching_more("a").get() is True
        assert store.get_fetching_more("b").get() is False
        release.set()
        await more
        assert store.get_fetching_more("a").get() is False

    @pytest.mark.asyncio
    async def test_flags_reset_on_failure(self):
        def lister(book_id, page):
            raise ConnectionError("offline")

        store = MappedStore(lister)
        with pytest.raises(ConnectionError):
            await store.list("a")
        assert store.get_fetching("a").get() is False
        assert store.get_observable_items("a").get() is None

    @pytest.mark.asyncio
    async def test_stale_list_more_is_discarded(self):
        release = asyncio.Event()

        async def lister(book_id, page):
            if page == 1:
                await release.wait()
            return plain_reviews(book_id, page)

        store = MappedStore(lister)
        await store.list("a")
        more = asyncio.create_task(store.list_more("a"))
        await asyncio.sleep(0)
        await store.list("a")
        release.set()
        await more
        assert len(store.get_observable_items("a").get().content) == 2


class TestBind:
    @pytest.mark.asyncio
    async def test_last_fetched_version_is_used(self):
        reviews = EntityStore(lambda key: {"_id": key, "title": "Fetched"}, "_id")
        store = MappedStore(keyed_reviews("_id")).bind(reviews)
        listed = store.get_observable_items("Dracula")
        second = reviews.get_observable("Dracula: 2-0")

        assert second.get() is None
        await reviews.fetch("Dracula: 2-0")
        assert second.get()["title"] == "Fetched"
        await store.list("Gargantua")
        assert second.get()["title"] == "Fetched"
        await store.list("Dracula")
        assert second.get()["title"] == "Dracula: Item 2-0"
        await store.list_more("Dracula")
        assert second.get()["title"] == "Dracula: Item 2-0"
        assert listed.get().content[1]["title"] == "Dracula: Item 2-0"
        await reviews.fetch("Dracula: 2-0")
        assert second.get()["title"] == "Fetched"
        assert listed.get().content[1]["title"] == "Fetched"
        assert len(listed.get().content) == 4

    @pytest.mark.asyncio
    async def test_removed_items_are_not_listed(self):
        reviews = EntityStore(lambda key: {"_id": key, "title": "Fetched"}, "_id")
        store = MappedStore(keyed_reviews("_id")).bind(reviews)
        listed = store.get_observable_items("Dracula")
        await store.list("Dracula")
        await store.list_more("Dracula")

        reviews.remove("Dracula: 2-0")
        assert reviews.get_observable("Dracula: 2-0").get() is None
        assert len(listed.get().content) == 3
        await reviews.fetch("Dracula: 2-0")
        assert reviews.get_observable("Dracula: 2-0").get()["title"] == "Fetched"
        assert len(listed.get().content) == 4


class TestPresent:
    @staticmethod
    def make():
        reviews = EntityStore(lambda key: {"id": key, "title": "Fetched", "content": "Review content"})
        store = MappedStore(keyed_reviews("id")).present(reviews)
        return reviews, store

    @pytest.mark.asyncio
    async def test_last_fetched_version_is_used(self):
        reviews, store = self.make()
        listed = store.get_observable_items("Dracula")
        first = reviews.get_observable("Dracula: 1-0")
        second = reviews.get_observable("Dracula: 2-0")

        await reviews.fetch("Dracula: 2-0")
        assert second.get()["content"] == "Review content"
        await store.list("Gargantua")
        assert second.get()["title"] == "Fetched"
        await store.list("Dracula")
        assert first.get() is None
        assert second.get()["title"] == "Dracula: Item 2-0"
        assert second.get()["content"] == "Review content"
        await store.list_more("Dracula")
        assert listed.get().content[0]["title"] == "Dracula: Item 1-0"
        assert listed.get().content[1]["title"] == "Dracula: Item 2-0"
        await reviews.fetch("Dracula: 2-0")
        assert second.get()["title"] == "Fetched"
        assert listed.get().content[1]["title"] == "Fetched"
        assert len(listed.get().content) == 4

    @pytest.mark.asyncio
    async def test_removed_items_are_not_presented(self):
        reviews, store = self.make()
        listed = store.get_observable_items("Dracula")
        await reviews.fetch("Dracula: 2-0")
        await store.list("Dracula")
        await store.list_more("Dracula")

        reviews.remove("Dracula: 2-0")
        assert len(listed.get().content) == 3
        await reviews.fetch("Dracula: 2-0")
        assert len(listed.get().content) == 4

    @pytest.mark.asyncio
    async def test_update_attempt_patches_every_key(self):
        reviews, store = self.make()
        await store.list("Dracula")
        await store.list("Gargantua")
        reviews.update("Dracula: 1-0", lambda review: {**review, "title": "Patched"})
        assert store.get_observable_items("Dracula").get().content[0]["title"] == "Patched"
        assert store.get_observable_items("Gargantua").get().content[0]["title"] == "Gargantua: Item 1-0"
