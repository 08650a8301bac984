"""Endpoint tests against the ASGI app with a fake Graph backend."""

from unittest.mock import AsyncMock

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from dependencies import get_graph_client, get_retrieval_service
from fakes import DRIVE, drive_item, listing, make_pdf
from main import create_app
from services.errors import GraphError, RetrievalTimeoutError
from services.types import FileInfo, RetrievalResult, ScoredChunk


@pytest.fixture
def app(graph_client):
    app = create_app()
    app.dependency_overrides[get_graph_client] = lambda: graph_client
    yield app
    app.dependency_overrides = {}


@pytest.fixture
def retrieval_service(app):
    service = AsyncMock()
    app.dependency_overrides[get_retrieval_service] = lambda: service
    return service


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def policy_result(full_text: str | None = None) -> RetrievalResult:
    file = FileInfo(
        item_id="1",
        name="policy.txt",
        path="/HR/Policies/policy.txt",
        web_url="https://contoso.sharepoint.com/policy.txt",
        content_type="text/plain",
        last_modified="2024-05-01T10:00:00Z",
    )
    snippet = ScoredChunk(text="Our vacation policy allows 15 days", score=2, file=file)
    return RetrievalResult(
        query="vacation policy",
        snippets=[snippet],
        combined_context=snippet.text,
        full_text=full_text,
    )


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json() == {"ok": True, "service": "sp-knowledge-proxy"}
        assert "X-Request-ID" in response.headers


class TestDriveRoutes:
    @pytest.mark.asyncio
    async def test_root_passes_listing_through(self, client, graph_routes, graph_requests):
        page = listing(drive_item("1", "HR", folder=True), drive_item("2", "a.txt"))
        graph_routes[("GET", f"{DRIVE}/root/children")] = httpx.Response(200, json=page)

        response = await client.get("/root", params={"$top": "2", "$select": "id,name"})

        assert response.status_code == 200
        assert response.json() == page
        params = graph_requests[0].url.params
        assert params["$top"] == "2"
        assert params["$select"] == "id,name"
        assert "$skip" not in params

    @pytest.mark.asyncio
    async def test_folder(self, client, graph_routes):
        page = listing(drive_item("1", "policy.txt"))
        graph_routes[("GET", f"{DRIVE}/root:/HR/Policies:/children")] = httpx.Response(
            200, json=page
        )

        response = await client.get("/folder", params={"path": "HR/Policies"})

        assert response.status_code == 200
        assert response.json() == page

    @pytest.mark.asyncio
    async def test_folder_requires_path(self, client, graph_requests):
        response = await client.get("/folder")

        assert response.status_code == 400
        assert response.json()["error"] == "Missing query param: path"
        assert graph_requests == []

    @pytest.mark.asyncio
    async def test_folder_upstream_error_passthrough(self, client):
        response = await client.get("/folder", params={"path": "Nope"})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "itemNotFound"

    @pytest.mark.asyncio
    async def test_download_requires_locator(self, client):
        response = await client.get("/download")

        assert response.status_code == 400
        assert response.json()["error"] == "Provide ?path= or ?id="

    @pytest.mark.asyncio
    async def test_download_unknown_id(self, client):
        response = await client.get("/download", params={"id": "nonexistent"})

        assert response.status_code == 404
        assert response.json() == {
            "error": {"code": "itemNotFound", "message": "Item not found"}
        }

    @pytest.mark.asyncio
    async def test_download_streams_content(self, client, graph_routes):
        graph_routes[("GET", f"{DRIVE}/root:/HR/policy.txt:/content")] = httpx.Response(
            200,
            headers={
                "content-type": "text/plain",
                "content-disposition": 'attachment; filename="policy.txt"',
                "x-internal": "secret",
            },
            content=b"Our vacation policy allows 15 days",
        )

        response = await client.get("/download", params={"path": "HR/policy.txt"})

        assert response.status_code == 200
        assert response.content == b"Our vacation policy allows 15 days"
        assert response.headers["content-type"].startswith("text/plain")
        assert "policy.txt" in response.headers["content-disposition"]
        assert "x-internal" not in response.headers

    @pytest.mark.asyncio
    async def test_download_path_wins_over_id(self, client, graph_routes, graph_requests):
        graph_routes[("GET", f"{DRIVE}/root:/a.txt:/content")] = httpx.Response(
            200, content=b"by path"
        )

        response = await client.get("/download", params={"path": "a.txt", "id": "42"})

        assert response.content == b"by path"
        assert "/items/" not in graph_requests[0].url.path


class TestRetrieveRoute:
    @pytest.mark.asyncio
    async def test_retrieve(self, client, retrieval_service):
        retrieval_service.retrieve.return_value = policy_result()

        response = await client.post(
            "/retrieve",
            json={"query": "vacation policy", "pathPrefix": "HR/Policies"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["query"] == "vacation policy"
        assert data["usedParams"] == {
            "pathPrefix": "HR/Policies",
            "topK": 6,
            "maxCharsPerChunk": 1200,
            "fileTypes": ["docx", "pdf", "txt"],
            "includeFileText": False,
        }
        snippet = data["snippets"][0]
        assert snippet["score"] == 2
        assert snippet["file"]["path"] == "/HR/Policies/policy.txt"
        assert snippet["file"]["lastModifiedDateTime"] == "2024-05-01T10:00:00Z"
        assert data["topFiles"] == [snippet["file"]]
        assert data["combinedContext"] == "Our vacation policy allows 15 days"
        assert data["partial"] is False
        assert data["skippedFiles"] == []
        assert "fullText" not in data

        kwargs = retrieval_service.retrieve.await_args.kwargs
        assert kwargs["path_prefix"] == "HR/Policies"
        assert kwargs["max_chars"] == 1200

    @pytest.mark.asyncio
    async def test_retrieve_full_text(self, client, retrieval_service):
        retrieval_service.retrieve.return_value = policy_result(
            full_text="Our vacation policy allows 15 days"
        )

        response = await client.post(
            "/retrieve",
            json={"query": "vacation", "includeFileText": True, "fileTypes": [".TXT"]},
        )

        data = response.json()
        assert data["fullText"] == "Our vacation policy allows 15 days"
        assert data["usedParams"]["fileTypes"] == ["txt"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"query": "   "},
            {"query": 42},
            {"query": "x", "topK": 0},
            {"query": "x", "maxCharsPerChunk": 0},
        ],
    )
    async def test_retrieve_validation(self, client, retrieval_service, body):
        response = await client.post("/retrieve", json=body)

        assert response.status_code == 400
        assert "error" in response.json()
        retrieval_service.retrieve.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_retrieve_upstream_error(self, client, retrieval_service):
        retrieval_service.retrieve.side_effect = GraphError(
            "forbidden", 403, {"error": {"code": "accessDenied"}}
        )

        response = await client.post("/retrieve", json={"query": "x"})

        assert response.status_code == 403
        assert response.json() == {"error": {"code": "accessDenied"}}

    @pytest.mark.asyncio
    async def test_retrieve_timeout(self, client, retrieval_service):
        retrieval_service.retrieve.side_effect = RetrievalTimeoutError("too slow")

        response = await client.post("/retrieve", json={"query": "x"})

        assert response.status_code == 504
        assert response.json()["error"] == "too slow"


class TestRetrieveOverGraph:
    """POST /retrieve through the real pipeline against the fake Graph."""

    POLICIES = "/drives/drive-1/root:/HR/Policies"

    @pytest.fixture(autouse=True)
    def drive(self, graph_routes):
        graph_routes[("GET", f"{DRIVE}/root:/HR/Policies:/children")] = httpx.Response(
            200,
            json=listing(
                drive_item("1", "policy.txt", parent=self.POLICIES),
                drive_item(
                    "2", "handbook.pdf", parent=self.POLICIES, mime_type="application/pdf"
                ),
                drive_item("3", "Archive", parent=self.POLICIES, folder=True),
            ),
        )
        graph_routes[("GET", f"{DRIVE}/root:/HR/Policies/Archive:/children")] = (
            httpx.Response(
                200,
                json=listing(
                    drive_item("4", "2019.txt", parent=f"{self.POLICIES}/Archive")
                ),
            )
        )
        graph_routes[("GET", f"{DRIVE}/items/1/content")] = httpx.Response(
            200, content=b"Our vacation policy allows 15 days"
        )
        graph_routes[("GET", f"{DRIVE}/items/2/content")] = httpx.Response(
            200, content=make_pdf("Employee code of conduct")
        )
        graph_routes[("GET", f"{DRIVE}/items/4/content")] = httpx.Response(
            200, content=b"Old vacation rules"
        )

    @pytest.mark.asyncio
    async def test_vacation_policy(self, client):
        response = await client.post(
            "/retrieve",
            json={"query": "vacation policy", "pathPrefix": "HR/Policies"},
        )

        assert response.status_code == 200
        data = response.json()
        assert [s["file"]["name"] for s in data["snippets"]] == [
            "policy.txt",
            "2019.txt",
            "handbook.pdf",
        ]
        assert [s["score"] for s in data["snippets"]] == [2, 1, 0]
        top = data["snippets"][0]
        assert top["text"] == "Our vacation policy allows 15 days"
        assert top["file"] == {
            "itemId": "1",
            "name": "policy.txt",
            "path": "/HR/Policies/policy.txt",
            "webUrl": "https://contoso.sharepoint.com/policy.txt",
            "contentType": "text/plain",
            "lastModifiedDateTime": "2024-05-01T10:00:00Z",
        }
        assert data["snippets"][1]["file"]["path"] == "/HR/Policies/Archive/2019.txt"
        assert data["topFiles"] == [s["file"] for s in data["snippets"]]
        assert data["combinedContext"].startswith(
            "Our vacation policy allows 15 days\n---\nOld vacation rules\n---\n"
        )
        assert "Employee code of conduct" in data["combinedContext"]
        assert data["skippedFiles"] == []

    @pytest.mark.asyncio
    async def test_txt_only(self, client, graph_requests):
        response = await client.post(
            "/retrieve",
            json={
                "query": "vacation policy",
                "pathPrefix": "HR/Policies",
                "fileTypes": ["txt"],
                "topK": 1,
            },
        )

        data = response.json()
        assert [s["file"]["name"] for s in data["snippets"]] == ["policy.txt"]
        assert data["combinedContext"] == "Our vacation policy allows 15 days"
        paths = [r.url.path for r in graph_requests]
        assert f"{DRIVE}/items/2/content" not in paths

    @pytest.mark.asyncio
    async def test_empty_file_types(self, client, graph_requests):
        response = await client.post(
            "/retrieve",
            json={"query": "vacation", "pathPrefix": "HR/Policies", "fileTypes": []},
        )

        data = response.json()
        assert data["usedParams"]["fileTypes"] == []
        assert data["snippets"] == []
        assert not any(r.url.path.endswith("/content") for r in graph_requests)
