from conftest import DAY_MS, T0


def _seed(client, case_payload, n=2):
    cards = [{"question": f"Q{i}", "answer": f"A{i}"} for i in range(n)]
    res = client.post("/cases/", json={**case_payload, "flashcards": cards})
    assert res.status_code == 201, res.text
    return sorted(c["id"] for c in res.json()["flashcards"])


def _start(client, **body):
    res = client.post("/study/sessions", json=body or None)
    assert res.status_code == 201, res.text
    return res.json()


def test_start_session_without_body(client, case_payload):
    ids = _seed(client, case_payload)
    state = _start(client)

    assert state["total"] == 2
    assert state["position"] == 0
    assert state["finished"] is False
    assert [c["id"] for c in state["cards"]] == ids
    assert state["current"]["id"] == ids[0]
    assert state["started_at"] == T0


def test_start_session_with_limit(client, case_payload):
    _seed(client, case_payload, n=3)
    assert _start(client, limit=1)["total"] == 1
    res = client.post("/study/sessions", json={"limit": 0})
    assert res.status_code == 422


def test_answer_flow(client, case_payload):
    ids = _seed(client, case_payload)
    session_id = _start(client)["id"]

    res = client.post(
        f"/study/sessions/{session_id}/answer", json={"card_id": ids[0], "quality": "good"}
    )
    assert res.status_code == 200
    assert res.json() == {
        "card_id": ids[0],
        "quality": "good",
        "status": "scheduled",
        "interval": 3,
        "ease_factor": 2.5,
        "next_review": T0 + 3 * DAY_MS,
        "detail": None,
    }

    res = client.post(
        f"/study/sessions/{session_id}/answer", json={"card_id": ids[1], "quality": "again"}
    )
    assert res.json()["interval"] == 1
    assert res.json()["ease_factor"] == 2.3

    state = client.get(f"/study/sessions/{session_id}").json()
    assert state["finished"] is True
    assert state["current"] is None
    assert [r["card_id"] for r in state["results"]] == ids

    # Finished session
    res = client.post(
        f"/study/sessions/{session_id}/answer", json={"card_id": ids[1], "quality": "good"}
    )
    assert res.status_code == 409


def test_answer_wrong_card_conflicts(client, case_payload):
    ids = _seed(client, case_payload)
    session_id = _start(client)["id"]
    res = client.post(
        f"/study/sessions/{session_id}/answer", json={"card_id": ids[1], "quality": "good"}
    )
    assert res.status_code == 409


def test_answer_invalid_quality(client, case_payload):
    ids = _seed(client, case_payload)
    session_id = _start(client)["id"]
    res = client.post(
        f"/study/sessions/{session_id}/answer", json={"card_id": ids[0], "quality": "hard"}
    )
    assert res.status_code == 422


def test_deleted_card_is_skipped(client, case_payload):
    ids = _seed(client, case_payload)
    session_id = _start(client)["id"]
    client.delete(f"/flashcards/{ids[0]}")

    res = client.post(
        f"/study/sessions/{session_id}/answer", json={"card_id": ids[0], "quality": "good"}
    )
    assert res.status_code == 200
    assert res.json()["status"] == "skipped"
    assert client.get(f"/study/sessions/{session_id}").json()["current"]["id"] == ids[1]


def test_good_then_again_across_sessions(client, clock, case_payload):
    card_id = _seed(client, case_payload, n=1)[0]

    first = _start(client)["id"]
    client.post(f"/study/sessions/{first}/answer", json={"card_id": card_id, "quality": "good"})

    clock.advance(DAY_MS)
    assert _start(client)["total"] == 0

    clock.advance(2 * DAY_MS)
    second = _start(client)
    assert [c["id"] for c in second["cards"]] == [card_id]
    res = client.post(
        f"/study/sessions/{second['id']}/answer", json={"card_id": card_id, "quality": "again"}
    )
    assert res.json()["next_review"] == T0 + 4 * DAY_MS


def test_end_session(client):
    session_id = _start(client)["id"]
    assert client.delete(f"/study/sessions/{session_id}").status_code == 204
    assert client.get(f"/study/sessions/{session_id}").status_code == 404
    assert client.delete(f"/study/sessions/{session_id}").status_code == 404
    res = client.post(
        f"/study/sessions/{session_id}/answer", json={"card_id": "x", "quality": "good"}
    )
    assert res.status_code == 404


def test_practice_replay_is_read_only(client, case_payload):
    ids = _seed(client, case_payload)
    session_id = _start(client)["id"]
    client.post(f"/study/sessions/{session_id}/answer", json={"card_id": ids[0], "quality": "easy"})
    before = [client.get(f"/flashcards/{i}").json() for i in ids]

    res = client.post(f"/study/sessions/{session_id}/practice")
    assert res.status_code == 201
    replay = res.json()
    assert replay["source_session_id"] == session_id
    assert replay["current"]["id"] == ids[0]

    replay = client.post(f"/study/practice/{replay['id']}/next").json()
    assert replay["current"]["id"] == ids[1]
    replay = client.post(f"/study/practice/{replay['id']}/next").json()
    assert replay["finished"] is True
    assert client.get(f"/study/practice/{replay['id']}").json()["position"] == 2

    assert [client.get(f"/flashcards/{i}").json() for i in ids] == before


def test_practice_unknown_ids(client):
    assert client.post("/study/sessions/missing/practice").status_code == 404
    assert client.get("/study/practice/missing").status_code == 404
    assert client.post("/study/practice/missing/next").status_code == 404
