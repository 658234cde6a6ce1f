"""
API 测试：文章、批注、AI 修订审批与内容分析接口
"""
from __future__ import annotations

from fastapi.testclient import TestClient
import pytest

from editorial_gate.api import revisions
from editorial_gate.core.database import init_db
from editorial_gate.main import app

ORIGINAL = "<p>This program is very good for most working adults.</p>"
REVISED = "<p>This program is excellent for most working adults.</p>"


def setup_module() -> None:
    """确保测试数据库表存在。"""
    init_db()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def fake_generate(monkeypatch):
    """替换 AI 生成函数，返回固定的修订稿。"""
    calls = []

    async def _generate(prompt: str, **options) -> str:
        calls.append(prompt)
        return f"Here is the revised HTML:\n{REVISED}"

    monkeypatch.setattr(revisions.revision_workflow, "generate_fn", _generate)
    return calls


def _create_article(client: TestClient, content: str = ORIGINAL) -> dict:
    resp = client.post(
        "/api/articles",
        json={
            "title": "Online MBA Programs",
            "content": content,
            "focus_keyword": "online mba",
            "faqs": [{"question": "Is it accredited?", "answer": "Yes."}],
        },
    )
    assert resp.status_code == 200
    return resp.json()


def _create_comment(client: TestClient, article_id: int, selected_text: str = "very good") -> dict:
    resp = client.post(
        f"/api/articles/{article_id}/comments",
        json={
            "selected_text": selected_text,
            "feedback": "Remove filler word 'very'",
            "category": "style",
            "severity": "moderate",
        },
    )
    assert resp.status_code == 200
    return resp.json()


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "healthy"}


def test_article_crud(client: TestClient) -> None:
    """创建、读取、保存文章。"""
    article = _create_article(client)

    assert article["word_count"] == 9
    assert article["target_keywords"] == []
    assert article["faqs"] == [{"question": "Is it accredited?", "answer": "Yes."}]

    resp = client.put(f"/api/articles/{article['id']}", json={"content": "<p>Short.</p>"})
    assert resp.status_code == 200
    assert resp.json()["content"] == "<p>Short.</p>"
    assert resp.json()["word_count"] == 1
    assert resp.json()["title"] == "Online MBA Programs"

    assert client.get(f"/api/articles/{article['id']}").json()["content"] == "<p>Short.</p>"


def test_article_errors(client: TestClient) -> None:
    """缺少标题返回 400，文章不存在返回 404。"""
    assert client.post("/api/articles", json={"title": "  "}).status_code == 400
    assert client.get("/api/articles/999999").status_code == 404
    assert client.put("/api/articles/999999", json={"content": "x"}).status_code == 404
    assert client.get("/api/articles/999999/quality").status_code == 404


def test_article_quality_and_links(client: TestClient) -> None:
    article = _create_article(
        client,
        "<p>See <a href='https://geteducated.com/x'>x</a> and "
        "<a href='https://onlineu.com/y'>y</a></p>",
    )

    quality = client.get(f"/api/articles/{article['id']}/quality").json()
    links = client.get(f"/api/articles/{article['id']}/links").json()

    assert quality["can_publish"] is False
    assert quality["checks"]["link_policy"]["passed"] is False
    assert "Add 2 more internal link(s)" in [i["description"] for i in quality["issues"]]
    assert links["internal_links"] == 1
    assert len(links["blocking_issues"]) == 1


def test_comment_lifecycle(client: TestClient) -> None:
    """创建、忽略、删除批注。"""
    article = _create_article(client)
    comment = _create_comment(client, article["id"])

    assert comment["status"] == "pending"
    assert comment["color"] == "#F59E0B"

    other = _create_comment(client, article["id"], "working adults")
    resp = client.post(f"/api/comments/{other['id']}/dismiss")
    assert resp.json()["status"] == "dismissed"
    assert client.delete(f"/api/comments/{other['id']}").status_code == 409
    assert client.post(f"/api/comments/{comment['id']}/reopen").status_code == 409

    pending = client.get(f"/api/articles/{article['id']}/comments", params={"status": "pending"})
    assert [c["id"] for c in pending.json()] == [comment["id"]]

    assert client.delete(f"/api/comments/{comment['id']}").status_code == 200
    assert client.delete(f"/api/comments/{comment['id']}").status_code == 404


def test_comment_validation_errors(client: TestClient) -> None:
    article = _create_article(client)

    bad_category = client.post(
        f"/api/articles/{article['id']}/comments",
        json={"selected_text": "very", "feedback": "x", "category": "spelling"},
    )
    missing_article = client.post(
        "/api/articles/999999/comments",
        json={"selected_text": "very", "feedback": "x"},
    )

    assert bad_category.status_code == 400
    assert missing_article.status_code == 404


def test_comment_config(client: TestClient) -> None:
    config = client.get("/api/comments/config").json()

    assert [c["value"] for c in config["categories"]][-1] == "general"
    assert [s["value"] for s in config["severities"]] == ["minor", "moderate", "major", "critical"]


def test_revision_approve_rollback_reapply(client: TestClient, fake_generate) -> None:
    """完整流程：发起修订 → 审批 → 回滚 → 重新应用。"""
    article = _create_article(client)
    comment = _create_comment(client, article["id"])
    article_id = article["id"]

    resp = client.post(f"/api/articles/{article_id}/revisions")
    assert resp.status_code == 200
    body = resp.json()
    assert body["pending"]["revised_content"] == REVISED
    assert "✅ 1 item(s) successfully addressed" in body["report"]
    assert len(fake_generate) == 1
    # 审批前文章不变
    assert client.get(f"/api/articles/{article_id}").json()["content"] == ORIGINAL

    session = client.get(f"/api/articles/{article_id}/revisions/pending").json()
    assert session["state"] == "pending_approval"
    assert session["has_unsaved_content"] is False

    # 已有待审批修订时不能再次发起
    assert client.post(f"/api/articles/{article_id}/revisions").status_code == 409

    approval = client.post(f"/api/articles/{article_id}/revisions/approve").json()
    revision_id = approval["revision_id"]
    assert approval["saved"] is True
    assert approval["addressed_comment_ids"] == [comment["id"]]
    assert client.get(f"/api/articles/{article_id}").json()["content"] == REVISED

    comments = client.get(f"/api/articles/{article_id}/comments").json()
    assert comments[0]["status"] == "addressed"
    assert comments[0]["revision_id"] == revision_id
    assert comments[0]["validation_details"]["status"] == "addressed"

    history = client.get(f"/api/articles/{article_id}/revisions").json()
    assert [r["id"] for r in history] == [revision_id]
    assert history[0]["approved"] is True

    diff = client.get(f"/api/revisions/{revision_id}/diff").json()
    assert diff["added_words"] == ["excellent"]
    assert diff["removed_words"] == ["very", "good"]

    rollback = client.post(f"/api/revisions/{revision_id}/rollback")
    assert rollback.status_code == 200
    assert rollback.json()["content"] == ORIGINAL
    assert client.get(f"/api/articles/{article_id}").json()["content"] == ORIGINAL
    assert client.post(f"/api/revisions/{revision_id}/rollback").status_code == 409

    reapply = client.post(f"/api/revisions/{revision_id}/reapply")
    assert reapply.status_code == 200
    assert client.get(f"/api/articles/{article_id}").json()["content"] == REVISED


def test_revision_reject(client: TestClient, fake_generate) -> None:
    article = _create_article(client)
    _create_comment(client, article["id"])

    pending = client.post(f"/api/articles/{article['id']}/revisions").json()["pending"]
    resp = client.post(f"/api/articles/{article['id']}/revisions/reject")

    assert resp.json() == {"revision_id": pending["revision_id"], "content": ORIGINAL}
    comments = client.get(f"/api/articles/{article['id']}/comments").json()
    assert comments[0]["status"] == "pending"
    assert client.post(f"/api/articles/{article['id']}/revisions/reject").status_code == 409


def test_revision_errors(client: TestClient, monkeypatch) -> None:
    """没有批注返回 409，AI 失败返回 502，修订不存在返回 404。"""
    article = _create_article(client)

    assert client.post(f"/api/articles/{article['id']}/revisions").status_code == 409

    async def _failing(prompt: str, **options) -> str:
        raise TimeoutError("upstream timeout")

    monkeypatch.setattr(revisions.revision_workflow, "generate_fn", _failing)
    _create_comment(client, article["id"])

    resp = client.post(f"/api/articles/{article['id']}/revisions")
    assert resp.status_code == 502
    session = client.get(f"/api/articles/{article['id']}/revisions/pending").json()
    assert session["state"] == "idle"

    assert client.post("/api/revisions/999999/rollback").status_code == 404
    assert client.get("/api/revisions/999999/diff").status_code == 404
    assert client.post("/api/articles/999999/revisions").status_code == 404
    assert client.post(f"/api/articles/{article['id']}/revisions/retry-save").status_code == 409


def test_training_endpoints(client: TestClient, fake_generate) -> None:
    article = _create_article(client)
    _create_comment(client, article["id"])
    client.post(f"/api/articles/{article['id']}/revisions")
    revision_id = client.post(f"/api/articles/{article['id']}/revisions/approve").json()["revision_id"]

    exported = client.get("/api/revisions/training/export").json()
    assert revision_id in [e["id"] for e in exported]

    toggled = client.patch(
        f"/api/revisions/{revision_id}/training",
        json={"include_in_training": False},
    )
    assert toggled.json()["include_in_training"] is False
    exported = client.get("/api/revisions/training/export").json()
    assert revision_id not in [e["id"] for e in exported]

    bulk = client.post(
        "/api/revisions/training/bulk",
        json={"revision_ids": [revision_id, 999999], "include_in_training": True},
    )
    assert bulk.json() == {"updated": 1}

    stats = client.get("/api/revisions/training/stats").json()
    assert stats["total"] >= 1
    assert stats["approved"] >= 1


def test_analysis_links(client: TestClient) -> None:
    resp = client.post(
        "/api/analysis/links",
        json={"content": '<p><a href="https://onlineu.com/y">y</a></p>'},
    )

    body = resp.json()
    assert len(body["report"]["blocking_issues"]) == 1
    assert body["report"]["is_compliant"] is False
    assert body["can_publish"] is False


def test_analysis_links_with_partial_rules(client: TestClient) -> None:
    resp = client.post(
        "/api/analysis/links",
        json={
            "content": "<p>See <a href='https://geteducated.com/x'>x</a></p>",
            "rules": {
                "min_internal_links": 3,
                "min_external_links": 1,
                "blocked_domains": [],
                "allowed_external_domains": [],
            },
        },
    )

    report = resp.json()["report"]
    assert report["internal_links"] == 1
    assert report["external_links"] == 0
    assert report["recommendation"] == (
        "Add 2 more internal link(s) and 1 more external link(s) for optimal SEO."
    )


def test_analysis_quality(client: TestClient) -> None:
    resp = client.post(
        "/api/analysis/quality",
        json={
            "content": "<p>See <a href='https://geteducated.com/x'>x</a></p>",
            "thresholds": {"min_internal_links": 3},
        },
    )

    body = resp.json()
    assert body["can_publish"] is False
    assert "Add 2 more internal link(s)" in [i["description"] for i in body["issues"]]


def test_analysis_diff(client: TestClient) -> None:
    unified = client.post(
        "/api/analysis/diff",
        json={"old_content": "The cat sat.", "new_content": "The big cat sat quietly."},
    ).json()
    split = client.post(
        "/api/analysis/diff",
        json={
            "old_content": "The cat sat.",
            "new_content": "The big cat sat quietly.",
            "mode": "split",
        },
    ).json()

    assert unified["result"]["added_words"] == ["big", "quietly"]
    assert unified["result"]["stats"]["change_percentage"] == 67
    assert unified["old_side"] is None
    assert not any(p["added"] for p in split["old_side"])
    assert split["unified"] is None


def test_analysis_validate(client: TestClient) -> None:
    resp = client.post(
        "/api/analysis/validate",
        json={
            "previous_content": "<p>This is very good.</p>",
            "revised_content": "<p>This is very good indeed.</p>",
            "feedback_items": [
                {"id": 1, "selected_text": "very good", "feedback": "remove filler word 'very'"}
            ],
        },
    )

    body = resp.json()
    assert body["result"]["items"][0]["status"] == "failed"
    assert body["result"]["success"] is False
    assert body["report"].startswith("⚠️ 1 item(s) may need manual review:")
