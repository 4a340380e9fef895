"""
Integration tests for the catalog endpoints.
"""

import pytest

from tests.conftest import add_books

pytestmark = pytest.mark.asyncio


class TestHealthEndpoints:
    """Tests for health check and unknown routes."""

    async def test_health_check(self, client):
        response = await client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "OK"
        assert data["environment"] == "test"
        assert "timestamp" in data
        assert "message" in data

    async def test_unknown_api_route(self, client):
        response = await client.get("/api/nowhere")

        assert response.status_code == 404
        assert response.json()["message"] == "API route not found"

    async def test_request_id_header(self, client):
        response = await client.get("/api/books", headers={"X-Request-ID": "abc123"})

        assert response.headers["X-Request-ID"] == "abc123"


class TestListBooks:
    """Tests for catalog listing, filtering and pagination."""

    async def test_empty_catalog(self, client):
        response = await client.get("/api/books")

        assert response.status_code == 200
        assert response.json() == {
            "books": [],
            "pagination": {"page": 1, "limit": 20, "total": 0, "totalPages": 0},
        }

    async def test_ordered_by_title(self, client, sample_books):
        response = await client.get("/api/books")

        titles = [book["title"] for book in response.json()["books"]]
        assert titles == sorted(titles)
        assert len(titles) == 4

    async def test_section_filter_and_second_page(self, app, client, many_books_data):
        await add_books(app, many_books_data)

        first = await client.get("/api/books", params={"section": "Histoire", "page": 1, "limit": 10})
        second = await client.get("/api/books", params={"section": "Histoire", "page": 2, "limit": 10})

        assert second.status_code == 200
        data = second.json()
        assert len(data["books"]) == 10
        assert all("histoire" in book["section"].lower() for book in data["books"])
        assert data["pagination"] == {"page": 2, "limit": 10, "total": 25, "totalPages": 3}
        assert data["books"][0]["title"] == "Histoire tome 11"
        first_titles = {book["title"] for book in first.json()["books"]}
        assert first_titles.isdisjoint(book["title"] for book in data["books"])

    async def test_section_filter_is_case_insensitive(self, client, sample_books):
        response = await client.get("/api/books", params={"section": "HISTOIRE"})

        sections = sorted(book["section"] for book in response.json()["books"])
        assert sections == ["Histoire", "histoire locale"]

    async def test_author_filter_matches_second_author(self, client, sample_books):
        response = await client.get("/api/books", params={"author": "martin"})

        titles = [book["title"] for book in response.json()["books"]]
        assert titles == ["Annecy au Moyen Âge", "Bâtir en montagne"]

    async def test_theme_and_geography_are_anded(self, client, sample_books):
        response = await client.get("/api/books", params={"theme": "Transports", "geography": "Alpes"})

        titles = [book["title"] for book in response.json()["books"]]
        assert titles == ["Des cols et des hommes"]

    async def test_search_title_summary_and_authors(self, client, sample_books):
        by_summary = await client.get("/api/books", params={"search": "paysanne"})
        by_author = await client.get("/api/books", params={"search": "Favre"})

        assert [b["title"] for b in by_summary.json()["books"]] == ["Chroniques savoyardes"]
        assert [b["title"] for b in by_author.json()["books"]] == ["Chroniques savoyardes"]

    async def test_no_match_returns_empty_list(self, client, sample_books):
        response = await client.get("/api/books", params={"search": "zzzz"})

        assert response.status_code == 200
        assert response.json()["books"] == []
        assert response.json()["pagination"]["total"] == 0

    async def test_hostile_input_is_just_text(self, client, sample_books):
        response = await client.get("/api/books", params={"search": "'; DROP TABLE books; --"})

        assert response.status_code == 200
        assert response.json()["books"] == []
        assert (await client.get("/api/books")).json()["pagination"]["total"] == 4

    @pytest.mark.parametrize("params", [{"page": 0}, {"limit": 0}, {"page": "abc"}])
    async def test_invalid_paging_is_rejected(self, client, params):
        response = await client.get("/api/books", params=params)

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid request"


class TestBookDetail:
    """Tests for single book retrieval."""

    async def test_get_book(self, client, sample_books):
        book = sample_books[0]

        response = await client.get(f"/api/books/{book.id}")

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == book.id
        assert data["entry_id"] == 1
        assert data["author_1"] == "Paul Martin"

    async def test_get_nonexistent_book(self, client):
        response = await client.get("/api/books/9999")

        assert response.status_code == 404
        assert response.json()["message"] == "Book not found"


class TestSuggestionsAndStats:
    """Tests for autocomplete and catalog statistics."""

    async def test_suggestions(self, client, sample_books):
        response = await client.get("/api/books/suggestions", params={"query": "roux"})

        assert response.status_code == 200
        data = response.json()
        assert {item["title"] for item in data} == {"Bâtir en montagne", "Des cols et des hommes"}
        assert set(data[0]) == {"id", "title", "author_1", "author_2"}

    async def test_suggestions_without_query(self, client, sample_books):
        response = await client.get("/api/books/suggestions")

        assert response.status_code == 200
        assert response.json() == []

    async def test_suggestions_are_capped(self, app, client, many_books_data):
        await add_books(app, many_books_data)

        response = await client.get("/api/books/suggestions", params={"query": "tome"})

        assert len(response.json()) == 10

    async def test_stats(self, client, sample_books):
        response = await client.get("/api/books/stats")

        assert response.status_code == 200
        data = response.json()
        assert data["overview"] == {
            "total_books": 4,
            "total_sections": 4,
            # 3 distinct first authors + 1 distinct second author
            "total_authors": 4,
            "total_themes": 4,
        }
        assert len(data["sections"]) == 4
        assert all(section["count"] == 1 for section in data["sections"])


class TestAddBook:
    """Tests for adding books."""

    async def test_requires_token(self, client, sample_book_data):
        response = await client.post("/api/books", json=sample_book_data)

        assert response.status_code == 401
        assert response.json()["message"] == "Access token required"

    async def test_member_can_add(self, client, member_headers, sample_book_data):
        response = await client.post("/api/books", json=sample_book_data, headers=member_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Book added successfully"
        book = data["book"]
        assert book["entry_id"] == 1
        assert book["author_1"] == "Jean Dupont"
        assert book["author_2"] is None
        assert book["page_count"] == 312
        assert book["publication_date"] == "1995-06-01"

    async def test_entry_number_is_assigned_by_server(self, client, member_headers, sample_books):
        response = await client.post(
            "/api/books",
            json={"title": "Nouveau", "section": "Histoire", "entryId": 1},
            headers=member_headers,
        )

        assert response.status_code == 201
        assert response.json()["book"]["entry_id"] == 5

    async def test_title_and_section_required(self, client, member_headers):
        response = await client.post(
            "/api/books", json={"title": "Sans section", "section": ""}, headers=member_headers
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Title and section are required"


class TestUpdateBook:
    """Tests for partial book updates."""

    async def test_member_is_forbidden(self, client, member_headers, sample_books):
        response = await client.put(
            f"/api/books/{sample_books[0].id}", json={"title": "x"}, headers=member_headers
        )

        assert response.status_code == 403
        assert response.json()["message"] == "Insufficient permissions"

    async def test_librarian_updates_camel_case_fields(self, client, librarian_headers, sample_books):
        book = sample_books[0]

        response = await client.put(
            f"/api/books/{book.id}",
            json={"pageCount": 250, "author2": "Marie Lenoir", "entryId": 999},
            headers=librarian_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Book updated successfully"
        assert data["book"]["page_count"] == 250
        assert data["book"]["author_2"] == "Marie Lenoir"
        assert data["book"]["entry_id"] == 1
        assert data["book"]["title"] == book.title

    async def test_only_protected_fields(self, client, admin_headers, sample_books):
        response = await client.put(
            f"/api/books/{sample_books[0].id}",
            json={"id": 5, "createdAt": "2020-01-01"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "No valid fields to update"

    @pytest.mark.parametrize("field,message", [("section", "Section cannot be empty"), ("title", "Title cannot be empty")])
    async def test_required_field_cannot_be_blanked(
        self, client, librarian_headers, sample_books, field, message
    ):
        book = sample_books[0]

        response = await client.put(f"/api/books/{book.id}", json={field: "  "}, headers=librarian_headers)

        assert response.status_code == 400
        assert response.json()["message"] == message
        unchanged = (await client.get(f"/api/books/{book.id}")).json()
        assert unchanged["section"] == book.section
        assert unchanged["title"] == book.title

    async def test_unknown_field(self, client, admin_headers, sample_books):
        response = await client.put(
            f"/api/books/{sample_books[0].id}", json={"colour": "red"}, headers=admin_headers
        )

        assert response.status_code == 400

    async def test_unknown_book(self, client, admin_headers):
        response = await client.put("/api/books/9999", json={"title": "x"}, headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["message"] == "Book not found"
