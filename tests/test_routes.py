"""API tests for the wizard routes."""

import pytest


@pytest.fixture
def project_id(client):
    response = client.post("/projects", json={
        "name": "Kitchen Reno",
        "user_id": "user-1",
        "address": "100 Queen St W, Toronto",
        "work_type": "renovation",
    })
    assert response.status_code == 200
    return response.json()["project_id"]


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_create_and_get_project(client, project_id):
    body = client.get(f"/projects/{project_id}").json()

    assert body["name"] == "Kitchen Reno"
    assert body["status"] == "draft"
    assert body["ledger_version"] == 1

    listed = client.get("/projects", params={"user_id": "user-1"}).json()
    assert [p["project_id"] for p in listed] == [project_id]


def test_unknown_project_is_404(client):
    response = client.get("/projects/00000000-0000-0000-0000-000000000000/citations")

    assert response.status_code == 404


def test_gfa_and_citation_listing(client, project_id):
    response = client.put(f"/projects/{project_id}/gfa", json={"input": "140 sqm", "expected_version": 1})
    assert response.status_code == 200
    assert response.json()["ledger_version"] == 2
    assert response.json()["citations"][0]["display"] == "1,507 sq ft"

    ledger = client.get(f"/projects/{project_id}/citations").json()
    assert ledger["version"] == 2
    assert [c["cite_type"] for c in ledger["citations"]][-1] == "GFA_LOCK"


def test_bad_gfa_is_400(client, project_id):
    response = client.put(f"/projects/{project_id}/gfa", json={"input": "abc"})

    assert response.status_code == 400


def test_stale_write_is_409(client, project_id):
    """Test a write with an outdated version is rejected."""
    client.put(f"/projects/{project_id}/name", json={"name": "First", "expected_version": 1})
    response = client.put(f"/projects/{project_id}/name", json={"name": "Second", "expected_version": 1})

    assert response.status_code == 409
    assert response.json()["detail"]["actual"] == 2


def test_amend_and_source(client, project_id):
    """Test amend supersedes and a citation resolves to its chat message."""
    message = client.post(f"/projects/{project_id}/messages", json={
        "role": "user",
        "content": "It's about 1500 square feet",
        "stage": "gfa",
    }).json()
    gfa = client.put(f"/projects/{project_id}/gfa", json={
        "input": "1500 sq ft",
        "source_message_id": message["message_id"],
    }).json()
    citation_id = gfa["citations"][0]["id"]

    source = client.get(f"/projects/{project_id}/citations/{citation_id}/source")
    assert source.status_code == 200
    assert source.json()["content"] == "It's about 1500 square feet"

    name_id = client.get(f"/projects/{project_id}/citations").json()["citations"][0]["id"]
    amended = client.post(f"/projects/{project_id}/citations/{name_id}/amend", json={
        "answer": "Kitchen & Bath",
        "expected_version": 2,
    })
    assert amended.status_code == 200
    assert amended.json()["citation"]["metadata"]["supersedes"] == name_id

    assert client.get(f"/projects/{project_id}/citations/{name_id}").status_code == 404
    assert client.get(f"/projects/{project_id}").json()["ledger_version"] == 3


def test_amend_gfa_keeps_area_numeric(client, project_id):
    """Test a corrected GFA answer is re-parsed and the template still starts."""
    gfa = client.put(f"/projects/{project_id}/gfa", json={"input": "1500 sq ft"}).json()
    citation_id = gfa["citations"][0]["id"]

    amended = client.post(f"/projects/{project_id}/citations/{citation_id}/amend", json={
        "answer": "2,000 sq ft",
        "expected_version": 2,
    })
    assert amended.status_code == 200
    assert amended.json()["citation"]["value"] == 2000
    assert amended.json()["display"] == "2,000 sq ft"

    state = client.post(f"/projects/{project_id}/template/start", json={"trade": "flooring"})
    assert state.status_code == 200
    assert state.json()["gfa_sqft"] == 2000

    new_id = amended.json()["citation"]["id"]
    bad = client.post(f"/projects/{project_id}/citations/{new_id}/amend", json={
        "answer": "big",
        "expected_version": 3,
    })
    assert bad.status_code == 400


def test_template_flow(client, project_id):
    """Test start, edit and lock through the API."""
    client.put(f"/projects/{project_id}/gfa", json={"input": "100 sq ft"})

    state = client.post(f"/projects/{project_id}/template/start", json={"trade": "custom"}).json()
    assert state["breakdown"]["net_total"] == 850.0

    state = client.put(f"/projects/{project_id}/template/markup", json={"markup_percent": 10}).json()
    assert state["breakdown"]["net_total"] == 935.0

    state = client.patch(f"/projects/{project_id}/template/items/2", json={"unit_price": 4}).json()
    assert state["breakdown"]["labor_total"] == 400.0

    assert client.delete(f"/projects/{project_id}/template/items/missing").status_code == 404
    assert client.put(f"/projects/{project_id}/template/waste", json={"waste_percent": 80}).status_code == 400

    locked = client.post(f"/projects/{project_id}/template/lock", json={}).json()
    lock = locked["citations"][1]
    assert lock["cite_type"] == "TEMPLATE_LOCK"
    assert lock["value"] == 1045.0
    assert lock["display"] == "$1,045.00 (pre-tax)"


def test_dna_schedule_and_review(client, project_id):
    client.put(f"/projects/{project_id}/gfa", json={"input": "100 sq ft"})
    client.post(f"/projects/{project_id}/template/start", json={"trade": "flooring"})
    client.post(f"/projects/{project_id}/template/lock", json={})
    assert client.put(f"/projects/{project_id}/dna/team-size", json={"team_size": "solo"}).status_code == 200

    response = client.post(f"/projects/{project_id}/dna/finalize", json={
        "timeline": "scheduled",
        "scheduled_date": "2026-03-01",
        "end_date": "2026-03-31",
    })
    assert response.status_code == 200

    schedule = client.get(f"/projects/{project_id}/schedule").json()
    assert schedule["start_date"] == "2026-03-01"
    assert schedule["total_days"] == 30
    assert not schedule["has_demolition"]
    assert any(t["id"] == "task_preparation_template_2" for t in schedule["tasks"])

    saved = client.post(f"/projects/{project_id}/schedule").json()
    assert saved["mode"] == "all"
    assert client.post(f"/projects/{project_id}/schedule").json()["mode"] == "skipped"

    review = client.get(f"/projects/{project_id}/review", params={"role": "inspector"}).json()
    assert review["can_edit"] is False
    stage7 = next(s for s in review["sections"] if s["id"] == "stage-7")
    assert [c["cite_type"] for c in stage7["citations"]] == ["TIMELINE", "END_DATE", "DNA_FINALIZED"]

    assert client.get(f"/projects/{project_id}/review", params={"role": "landlord"}).status_code == 400

    health = client.get(f"/projects/{project_id}/health").json()
    assert health["is_solo_mode"]
    assert "dna_finalized" in health["completed_pillars"]


def test_team_routes(client, project_id, mailer):
    response = client.post(f"/projects/{project_id}/team/invite", json={
        "inviter_id": "user-1",
        "members": [
            {"type": "email", "access_level": "foreman", "email": "sam@example.com"},
            {"type": "user", "access_level": "client", "user_id": "user-9", "user_name": "Robin"},
        ],
    })
    assert response.status_code == 200
    assert response.json()["emails_sent"] == 1
    assert mailer.sent[0]["email"] == "sam@example.com"

    team = client.get(f"/projects/{project_id}/team").json()
    assert team["members"][0]["user_id"] == "user-9"
    assert team["invitations"][0]["status"] == "pending"

    bad = client.post(f"/projects/{project_id}/team/invite", json={
        "inviter_id": "user-1",
        "members": [{"type": "email", "access_level": "foreman"}],
    })
    assert bad.status_code == 422


def test_document_upload(client, project_id, storage):
    """Test uploads are stored and cited as multi-instance facts."""
    for name in ("plan-a.pdf", "plan-b.pdf"):
        response = client.post(
            f"/projects/{project_id}/documents",
            data={"kind": "blueprint", "uploaded_by": "user-1"},
            files={"file": (name, b"%PDF-1.4 test", "application/pdf")},
        )
        assert response.status_code == 200

    body = response.json()
    assert body["citation"]["cite_type"] == "BLUEPRINT_UPLOAD"
    assert storage.read(body["file_path"]) == b"%PDF-1.4 test"

    documents = client.get(f"/projects/{project_id}/documents").json()
    assert len(documents) == 2

    content = client.get(f"/projects/{project_id}/documents/{body['document_id']}/content")
    assert content.content == b"%PDF-1.4 test"

    ledger = client.get(f"/projects/{project_id}/citations").json()
    assert [c["cite_type"] for c in ledger["citations"]].count("BLUEPRINT_UPLOAD") == 2

    bad = client.post(
        f"/projects/{project_id}/documents",
        data={"kind": "selfie"},
        files={"file": ("me.jpg", b"x", "image/jpeg")},
    )
    assert bad.status_code == 400
