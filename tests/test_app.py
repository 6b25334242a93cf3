"""HTTP tests for the Flask routes, run against a temporary navigation file."""

import base64
import threading
import time

from sitelist_app.app import PROJECT_ROOT, _env_path, app as flask_app
from sitelist_app.storage import NavigationStore
from sitelist_app.tree import locate


def _site_ids(response):
    return [s["id"] for s in response.get_json()["sites"]]


class TestReadRoutes:

    def test_index_renders_sites(self, client):
        resp = client.get("/?q=docs")
        assert resp.status_code == 200
        body = resp.get_data(as_text=True)
        assert "Python Docs" in body
        assert "Hacker News" not in body

    def test_get_navigation(self, client):
        data = client.get("/api/navigation").get_json()
        assert [c["id"] for c in data["navigationItems"]] == ["dev", "news"]

    def test_list_sites_with_filters(self, client):
        resp = client.get("/api/sites?category=dev&subCategory=none")
        assert resp.get_json()["total"] == 2
        assert _site_ids(resp) == ["gh", "so"]

    def test_get_site_prefill(self, client):
        data = client.get("/api/sites/py").get_json()
        assert data["categoryId"] == "dev"
        assert data["subCategoryId"] == "docs"
        assert data["icon"] == "/i/py.png"

    def test_get_missing_site(self, client):
        assert client.get("/api/sites/nope").status_code == 404

    def test_health(self, client, store):
        data = client.get("/health").get_json()
        assert data["exists"] is True
        assert data["navigation_path"] == str(store.path)


class TestMutations:

    def test_add_site(self, client, store):
        resp = client.post("/api/sites", json={
            "name": "PyPI", "url": "https://pypi.org", "categoryId": "dev", "subCategoryId": "tools",
        })
        assert resp.status_code == 200
        new_id = resp.get_json()["id"]
        assert new_id in _site_ids(resp)
        location = locate(store.load(), new_id)
        assert (location.category_index, location.sub_category_index) == (0, 1)

    def test_add_requires_fields(self, client, store):
        before = store.path.read_text(encoding="utf-8")
        resp = client.post("/api/sites", json={"name": "x"})
        assert resp.status_code == 400
        assert store.path.read_text(encoding="utf-8") == before

    def test_add_unknown_category(self, client):
        resp = client.post("/api/sites", json={"name": "x", "url": "u", "categoryId": "missing"})
        assert resp.status_code == 404

    def test_edit_moves_site_and_enables(self, client, store):
        resp = client.put("/api/sites/mdn", json={
            "name": "MDN", "url": "https://developer.mozilla.org", "categoryId": "news", "subCategoryId": "none",
        })
        assert resp.status_code == 200
        tree = store.load()
        assert [s.id for s in tree[1].items] == ["hn", "mdn"]
        assert tree[1].items[1].enabled is True

    def test_edit_unknown_site(self, client):
        resp = client.put("/api/sites/nope", json={"name": "x", "url": "u", "categoryId": "dev"})
        assert resp.status_code == 404

    def test_delete_site(self, client, store):
        resp = client.delete("/api/sites/so")
        assert resp.status_code == 200
        assert "so" not in _site_ids(resp)
        assert locate(store.load(), "so") is None

    def test_batch_delete(self, client, store):
        resp = client.post("/api/sites/batch-delete", json={"ids": ["gh", "hn"]})
        assert resp.status_code == 200
        assert _site_ids(resp) == ["so", "py", "mdn"]

    def test_batch_delete_unknown_id_keeps_tree(self, client, store):
        resp = client.delete("/api/sites/batch-delete", json={"ids": ["gh", "nope"]})
        assert resp.status_code == 404
        assert locate(store.load(), "gh") is not None

    def test_batch_delete_requires_ids(self, client):
        assert client.post("/api/sites/batch-delete", json={"ids": []}).status_code == 400

    def test_replace_navigation(self, client, store):
        resp = client.post("/api/navigation", json={"navigationItems": [{"id": "only", "title": "Only"}]})
        assert resp.status_code == 200
        assert [c.id for c in store.load()] == ["only"]

    def test_replace_navigation_invalid(self, client):
        resp = client.post("/api/navigation", json={"navigationItems": "nope"})
        assert resp.status_code == 400


class TestUploadRoute:

    def test_upload_and_serve(self, client):
        raw = b"GIF89a-test"
        data_url = "data:image/gif;base64," + base64.b64encode(raw).decode("ascii")
        resp = client.post("/api/resource", json={"image": data_url})
        assert resp.status_code == 200
        url = resp.get_json()["imageUrl"]
        assert url.startswith("/uploads/") and url.endswith(".gif")
        assert client.get(url).data == raw

    def test_upload_rejects_garbage(self, client):
        assert client.post("/api/resource", json={"image": "nope"}).status_code == 400

    def test_svg_upload_rejected(self, client):
        svg = b"<svg xmlns='http://www.w3.org/2000/svg'><script>alert(1)</script></svg>"
        data_url = "data:image/svg+xml;base64," + base64.b64encode(svg).decode("ascii")
        resp = client.post("/api/resource", json={"image": data_url})
        assert resp.status_code == 400
        assert resp.is_json

    def test_uploads_served_sandboxed(self, client):
        data_url = "data:image/png;base64," + base64.b64encode(b"\x89PNG-x").decode("ascii")
        url = client.post("/api/resource", json={"image": data_url}).get_json()["imageUrl"]
        resp = client.get(url)
        assert resp.headers["Content-Security-Policy"] == "sandbox"
        assert resp.headers["X-Content-Type-Options"] == "nosniff"

    def test_oversized_body_is_json_413(self, client, monkeypatch):
        monkeypatch.setitem(flask_app.config, "MAX_CONTENT_LENGTH", 64)
        resp = client.post("/api/resource", json={"image": "data:image/png;base64," + "A" * 500})
        assert resp.status_code == 413
        assert resp.is_json
        assert "exceeds" in resp.get_json()["error"]


class TestConfig:

    def test_relative_env_path_anchored_at_project_root(self, monkeypatch):
        monkeypatch.setenv("NAVIGATION_PATH", "data/nav.yml")
        assert _env_path("NAVIGATION_PATH", PROJECT_ROOT / "x.yml") == PROJECT_ROOT / "data" / "nav.yml"

    def test_absolute_env_path_kept(self, monkeypatch, tmp_path):
        monkeypatch.setenv("UPLOAD_DIR", str(tmp_path))
        assert _env_path("UPLOAD_DIR", PROJECT_ROOT / "uploads") == tmp_path

    def test_unset_env_uses_default(self, monkeypatch):
        monkeypatch.delenv("UPLOAD_DIR", raising=False)
        assert _env_path("UPLOAD_DIR", PROJECT_ROOT / "uploads") == PROJECT_ROOT / "uploads"


class TestConcurrency:

    def test_parallel_loads_share_parser_safely(self, store):
        errors = []

        def worker():
            try:
                for _ in range(20):
                    assert len(store.load()) == 2
            except Exception as exc:  # collected and asserted below
                errors.append(exc)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert errors == []

    def test_overlapping_adds_keep_every_site(self, client, store, monkeypatch):
        original_load = NavigationStore.load

        def slow_load(self):
            tree = original_load(self)
            time.sleep(0.05)
            return tree

        monkeypatch.setattr(NavigationStore, "load", slow_load)
        names = [f"site-{n}" for n in range(4)]
        statuses = []

        def add(name):
            with flask_app.test_client() as own_client:
                resp = own_client.post("/api/sites", json={"name": name, "url": f"https://{name}", "categoryId": "news"})
                statuses.append(resp.status_code)

        threads = [threading.Thread(target=add, args=(name,)) for name in names]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert statuses == [200] * len(names)
        stored = [s.title for s in original_load(store)[1].items]
        assert stored[0] == "Hacker News"
        assert sorted(stored[1:]) == names
