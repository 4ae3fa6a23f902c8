"""Catalog listing, detail, genres and owner/admin-only writes."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from bookshelf.config import Settings, get_settings
from bookshelf.models import UserBook, UserRole
from bookshelf.services.catalog import edit_window_open

from .conftest import auth_headers, hours_ago


async def _create(client, user, **form):
    form.setdefault("title", "My Book")
    return await client.post("/books", data=form, headers=auth_headers(user))


class TestListBooks:
    @pytest.mark.asyncio
    async def test_search_is_case_insensitive_substring(self, client, factory):
        for title in ("Dune", "Dune Messiah", "Children of Dune", "Foundation", "The Hobbit"):
            await factory.book(title, genre="Science Fiction")

        response = await client.get("/books", params={"q": "dune", "limit": 20})
        assert response.status_code == 200
        data = response.json()
        assert data["pagination"] == {"currentPage": 1, "totalPages": 1, "totalBooks": 3}
        assert [b["title"] for b in data["books"]] == ["Children of Dune", "Dune", "Dune Messiah"]

    @pytest.mark.asyncio
    async def test_no_match_reports_zero_pages(self, client, factory):
        await factory.book("Dune")
        data = (await client.get("/books", params={"q": "zzz"})).json()
        assert data["books"] == []
        assert data["pagination"] == {"currentPage": 1, "totalPages": 0, "totalBooks": 0}

    @pytest.mark.asyncio
    async def test_genre_filter_is_exact(self, client, factory):
        await factory.book("Dracula", genre="Horror")
        await factory.book("Frankenstein", genre="Horror")
        await factory.book("Emma", genre="Romance")
        await factory.book("Horror Stories", genre="Anthology")

        data = (await client.get("/books", params={"genre": "Horror"})).json()
        assert [b["title"] for b in data["books"]] == ["Dracula", "Frankenstein"]
        assert data["pagination"]["totalBooks"] == 2

    @pytest.mark.asyncio
    async def test_page_past_the_end_is_empty_with_counts(self, client, factory):
        for i in range(3):
            await factory.book(f"Book {i}")
        data = (await client.get("/books", params={"page": 9, "limit": 2})).json()
        assert data["books"] == []
        assert data["pagination"] == {"currentPage": 9, "totalPages": 2, "totalBooks": 3}

    @pytest.mark.asyncio
    async def test_huge_page_number_is_empty_with_counts(self, client, factory):
        await factory.book("Dune")
        response = await client.get("/books", params={"page": str(10**20)})
        assert response.status_code == 200
        data = response.json()
        assert data["books"] == []
        assert data["pagination"]["totalBooks"] == 1
        assert data["pagination"]["totalPages"] == 1
        assert data["pagination"]["currentPage"] >= 2

    @pytest.mark.asyncio
    async def test_limit_is_capped(self, client, factory):
        for i in range(55):
            await factory.book(f"Volume {i:02d}")
        data = (await client.get("/books", params={"limit": 500})).json()
        assert len(data["books"]) == 50
        assert data["pagination"]["totalPages"] == 2
        assert data["pagination"]["totalBooks"] == 55

    @pytest.mark.asyncio
    async def test_junk_paging_values_use_defaults(self, client, factory):
        await factory.book("Only")
        response = await client.get("/books", params={"page": "abc", "limit": "-4"})
        assert response.status_code == 200
        assert response.json()["pagination"]["currentPage"] == 1

    @pytest.mark.asyncio
    async def test_title_ties_keep_a_stable_order(self, client, factory):
        ids = [(await factory.book("Same")).id for _ in range(4)]
        first = (await client.get("/books", params={"limit": 2, "page": 1})).json()["books"]
        second = (await client.get("/books", params={"limit": 2, "page": 2})).json()["books"]
        assert [b["id"] for b in first + second] == ids

    @pytest.mark.asyncio
    async def test_sort_by_created_at_desc(self, client, factory):
        old = await factory.book("Old", created_at=hours_ago(48))
        new = await factory.book("New", created_at=hours_ago(1))
        data = (await client.get("/books", params={"sort": "created_at", "order": "desc"})).json()
        assert [b["id"] for b in data["books"]] == [new.id, old.id]

    @pytest.mark.asyncio
    async def test_unknown_sort_key_falls_back_to_title(self, client, factory):
        await factory.book("Beta")
        await factory.book("Alpha")
        response = await client.get("/books", params={"sort": "title; DROP TABLE books"})
        assert response.status_code == 200
        assert [b["title"] for b in response.json()["books"]] == ["Alpha", "Beta"]

    @pytest.mark.asyncio
    async def test_wildcard_characters_match_literally(self, client, factory):
        await factory.book("100% Wool")
        await factory.book("1000 Wool Patterns")
        data = (await client.get("/books", params={"q": "100%"})).json()
        assert [b["title"] for b in data["books"]] == ["100% Wool"]

    @pytest.mark.asyncio
    async def test_rows_carry_creator_and_description(self, client, factory):
        user = await factory.user(username="maker")
        await factory.book("Handmade", created_by=user.id, description="Stitched by hand")
        book = (await client.get("/books")).json()["books"][0]
        assert book["username"] == "maker"
        assert book["user_id"] == user.id
        assert book["desc"] == "Stitched by hand"
        assert book["cover_source"] == "none"


class TestBookDetail:
    @pytest.mark.asyncio
    async def test_found(self, client, factory):
        book = await factory.book("Meditations", genre="Philosophy", authors="Marcus Aurelius")
        response = await client.get(f"/books/{book.id}")
        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Meditations"
        assert data["authors"] == "Marcus Aurelius"
        assert data["username"] is None

    @pytest.mark.asyncio
    async def test_missing(self, client):
        response = await client.get("/books/99999")
        assert response.status_code == 404
        assert response.json()["detail"] == "Book not found"


class TestGenres:
    @pytest.mark.asyncio
    async def test_distinct_and_sorted(self, client, factory):
        await factory.book("A", genre="Horror")
        await factory.book("B", genre="Fantasy")
        await factory.book("C", genre="Horror")
        await factory.book("D")
        response = await client.get("/genres")
        assert response.json() == ["Fantasy", "Horror"]

    @pytest.mark.asyncio
    async def test_empty_catalog(self, client):
        assert (await client.get("/genres")).json() == []


class TestCreateBook:
    @pytest.mark.asyncio
    async def test_creator_owns_new_book(self, client, factory):
        user = await factory.user()
        response = await _create(client, user, title="Field Notes", authors="Me", genre="Memoir", desc="Birds")
        assert response.status_code == 201
        book_id = response.json()["bookId"]

        owned = await client.get(f"/user-books/{book_id}", headers=auth_headers(user))
        assert owned.json() is True

        detail = (await client.get(f"/books/{book_id}")).json()
        assert detail["desc"] == "Birds"
        assert detail["user_id"] == user.id

    @pytest.mark.asyncio
    async def test_explicit_add_after_create_does_not_duplicate(self, client, factory):
        user = await factory.user()
        book_id = (await _create(client, user)).json()["bookId"]
        response = await client.post("/user-books", json={"bookId": book_id}, headers=auth_headers(user))
        assert response.status_code == 201
        assert await factory.count(UserBook, user_id=user.id, book_id=book_id) == 1

    @pytest.mark.asyncio
    async def test_authors_default_to_unknown(self, client, factory):
        user = await factory.user()
        book_id = (await _create(client, user, authors="   ")).json()["bookId"]
        assert (await client.get(f"/books/{book_id}")).json()["authors"] == "Unknown"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("title", [None, "", "   "])
    async def test_title_required(self, client, factory, title):
        user = await factory.user()
        form = {"authors": "Someone"}
        if title is not None:
            form["title"] = title
        response = await client.post("/books", data=form, headers=auth_headers(user))
        assert response.status_code == 400
        assert response.json()["detail"] == "Title is required"

    @pytest.mark.asyncio
    async def test_requires_login(self, client):
        response = await client.post("/books", data={"title": "Anonymous"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_cover_upload(self, client, factory, cover_storage):
        user = await factory.user()
        response = await client.post(
            "/books",
            data={"title": "Covered"},
            files={"cover": ("cover.png", b"\x89PNG fake", "image/png")},
            headers=auth_headers(user),
        )
        assert response.status_code == 201
        assert cover_storage.uploads == [(b"\x89PNG fake", "image/png")]

        detail = (await client.get(f"/books/{response.json()['bookId']}")).json()
        assert detail["cover_source"] == "cloudinary"
        assert detail["cover_url"] == "https://res.cloudinary.test/book-covers/1.png"

    @pytest.mark.asyncio
    async def test_non_image_cover_rejected(self, client, factory, cover_storage):
        user = await factory.user()
        response = await client.post(
            "/books",
            data={"title": "Bad cover"},
            files={"cover": ("notes.txt", b"hello", "text/plain")},
            headers=auth_headers(user),
        )
        assert response.status_code == 400
        assert cover_storage.uploads == []


class TestUpdateBook:
    @pytest.mark.asyncio
    async def test_creator_can_edit(self, client, factory):
        user = await factory.user()
        book = await factory.book("Draft", created_by=user.id)
        response = await client.put(
            f"/books/{book.id}",
            data={"title": "Final", "genre": "Essay"},
            headers=auth_headers(user),
        )
        assert response.status_code == 200
        detail = (await client.get(f"/books/{book.id}")).json()
        assert detail["title"] == "Final"
        assert detail["genre"] == "Essay"

    @pytest.mark.asyncio
    async def test_other_user_forbidden(self, client, factory):
        owner = await factory.user()
        intruder = await factory.user()
        book = await factory.book("Mine", created_by=owner.id)
        response = await client.put(f"/books/{book.id}", data={"title": "Yours"}, headers=auth_headers(intruder))
        assert response.status_code == 403
        assert (await client.get(f"/books/{book.id}")).json()["title"] == "Mine"

    @pytest.mark.asyncio
    async def test_imported_books_are_admin_only(self, client, factory):
        user = await factory.user()
        admin = await factory.user(role=UserRole.ADMIN)
        book = await factory.book("Imported")

        denied = await client.put(f"/books/{book.id}", data={"title": "X"}, headers=auth_headers(user))
        assert denied.status_code == 403

        allowed = await client.put(f"/books/{book.id}", data={"title": "Fixed"}, headers=auth_headers(admin))
        assert allowed.status_code == 200

    @pytest.mark.asyncio
    async def test_edit_window_applies_to_everyone(self, client, factory):
        user = await factory.user()
        admin = await factory.user(role=UserRole.ADMIN)
        book = await factory.book("Stale", created_by=user.id, created_at=hours_ago(25))

        for who in (user, admin):
            response = await client.put(f"/books/{book.id}", data={"title": "Late"}, headers=auth_headers(who))
            assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_zero_window_disables_time_limit(self, client, factory):
        from bookshelf.main import app

        app.dependency_overrides[get_settings] = lambda: Settings(book_edit_window_hours=0)
        user = await factory.user()
        book = await factory.book("Ancient", created_by=user.id, created_at=hours_ago(24 * 365))
        response = await client.put(f"/books/{book.id}", data={"title": "Renewed"}, headers=auth_headers(user))
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_missing_book(self, client, factory):
        admin = await factory.user(role=UserRole.ADMIN)
        response = await client.put("/books/4040", data={"title": "Ghost"}, headers=auth_headers(admin))
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_cover_kept_without_new_upload(self, client, factory):
        user = await factory.user()
        created = await client.post(
            "/books",
            data={"title": "Covered"},
            files={"cover": ("cover.jpg", b"jpeg", "image/jpeg")},
            headers=auth_headers(user),
        )
        book_id = created.json()["bookId"]
        before = (await client.get(f"/books/{book_id}")).json()["cover_url"]

        await client.put(f"/books/{book_id}", data={"title": "Renamed"}, headers=auth_headers(user))

        after = (await client.get(f"/books/{book_id}")).json()
        assert after["title"] == "Renamed"
        assert after["cover_url"] == before


class TestEditWindow:
    now = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)

    def test_inside_window(self):
        assert edit_window_open(self.now - timedelta(hours=23), 24, now=self.now)

    def test_outside_window(self):
        assert not edit_window_open(self.now - timedelta(hours=25), 24, now=self.now)

    def test_naive_timestamps_are_utc(self):
        created = (self.now - timedelta(hours=1)).replace(tzinfo=None)
        assert edit_window_open(created, 24, now=self.now)

    def test_zero_disables_window(self):
        assert edit_window_open(self.now - timedelta(days=400), 0, now=self.now)


class TestDeleteBook:
    @pytest.mark.asyncio
    async def test_creator_can_delete(self, client, factory):
        user = await factory.user()
        book_id = (await _create(client, user)).json()["bookId"]
        await client.post("/reading-list", json={"bookId": book_id}, headers=auth_headers(user))

        response = await client.delete(f"/books/{book_id}", headers=auth_headers(user))
        assert response.status_code == 200
        assert (await client.get(f"/books/{book_id}")).status_code == 404
        assert await factory.count(UserBook, book_id=book_id) == 0

    @pytest.mark.asyncio
    async def test_other_user_forbidden(self, client, factory):
        owner = await factory.user()
        intruder = await factory.user()
        book = await factory.book("Keep", created_by=owner.id)
        response = await client.delete(f"/books/{book.id}", headers=auth_headers(intruder))
        assert response.status_code == 403
        assert (await client.get(f"/books/{book.id}")).status_code == 200

    @pytest.mark.asyncio
    async def test_admin_can_delete_imported(self, client, factory):
        admin = await factory.user(role=UserRole.ADMIN)
        book = await factory.book("Duplicate import")
        response = await client.delete(f"/books/{book.id}", headers=auth_headers(admin))
        assert response.status_code == 200
