"""API endpoint tests against an in-memory database."""

from quadrant.models import TalentDecision

API = "/api/app"


class TestHealthEndpoints:
    """Test health check endpoints."""

    async def test_health_check(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"

    async def test_readiness_and_liveness(self, client):
        assert (await client.get("/ready")).json() == {"status": "ready"}
        assert (await client.get("/live")).json() == {"status": "alive"}


class TestErrorEnvelope:
    async def test_missing_workspace_header(self, client, seed):
        response = await client.get(f"{API}/skills/map", headers={"X-User-ID": seed.owner.id})

        assert response.status_code == 401
        body = response.json()
        assert body["ok"] is False
        assert body["error"]["code"] == "AUTH_REQUIRED"

    async def test_validation_error(self, client, owner_headers, seed):
        response = await client.post(
            f"{API}/risk-cases",
            headers=owner_headers,
            json={"employee_id": seed.employees[0].id, "level": "critical", "title": "x"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_not_found(self, client, owner_headers):
        response = await client.get(f"{API}/decisions/missing", headers=owner_headers)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "TALENT_DECISION_NOT_FOUND"

    async def test_invalid_transition(self, client, owner_headers):
        created = await client.post(f"{API}/pilots", headers=owner_headers, json={"name": "Bench"})
        assert created.status_code == 201
        pilot_id = created.json()["pilot"]["run"]["id"]

        response = await client.patch(f"{API}/pilots/{pilot_id}", headers=owner_headers, json={"status": "completed"})

        assert response.status_code == 409
        error = response.json()["error"]
        assert error["code"] == "INVALID_TRANSITION"
        assert error["details"] == {"from": "draft", "to": "completed"}


class TestSkillMapEndpoint:
    async def test_skill_map(self, client, owner_headers):
        response = await client.get(f"{API}/skills/map", headers=owner_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        golang = next(s for s in body["map"]["skills"] if s["name"] == "GoLang")
        assert golang["bus_factor"] == 1
        assert golang["risk_level"] == "high"


class TestRiskCaseEndpoints:
    async def test_create_and_list(self, client, owner_headers, seed):
        payload = {"employee_id": seed.employees[0].id, "level": "high", "title": "Single GoLang owner"}

        first = await client.post(f"{API}/risk-cases", headers=owner_headers, json=payload)
        second = await client.post(f"{API}/risk-cases", headers=owner_headers, json=payload)

        assert first.status_code == 201
        assert first.json()["case"]["id"] == second.json()["case"]["id"]
        listing = (await client.get(f"{API}/risk-cases", headers=owner_headers)).json()
        assert listing["total"] == 1
        assert listing["high_count"] == 1

        unread = (await client.get(f"{API}/notifications/unread-count", headers=owner_headers)).json()
        assert unread["unread_count"] == 1


class TestDecisionEndpoints:
    async def test_create_and_filter(self, client, manager_headers, seed):
        response = await client.post(
            f"{API}/decisions",
            headers=manager_headers,
            json={"employee_id": seed.employees[1].id, "type": "monitor_risk", "title": "Overloaded"},
        )

        assert response.status_code == 201
        decision = response.json()["decision"]
        assert decision["employee_name"] == "Bob"
        assert decision["decision"]["status"] == "proposed"

        listing = await client.get(
            f"{API}/decisions", headers=manager_headers, params={"type": "monitor_risk", "only_open": "true"}
        )
        assert [d["decision"]["id"] for d in listing.json()["decisions"]] == [decision["decision"]["id"]]


class TestDecisionsCsvEndpoint:
    async def test_empty_quarter(self, client, owner_headers):
        response = await client.get(
            f"{API}/reports/quarterly/decisions-csv",
            headers=owner_headers,
            params={"year": 2023, "quarter": 3},
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == "text/csv; charset=utf-8"
        assert response.headers["content-disposition"] == (
            "attachment; filename=quarterly-decisions-2023-Q3.csv"
        )
        assert response.text == "employeeName,teamName,type,status,title,createdAt,updatedAt"

    async def test_rows(self, client, owner_headers, session, seed):
        session.add(
            TalentDecision(
                workspace_id=seed.workspace.id,
                employee_id=seed.employees[0].id,
                type="promote",
                status="approved",
                title='Lead "platform"',
                created_by_user_id=seed.owner.id,
                created_at="2024-02-01T10:00:00.000Z",
                updated_at="2024-02-02T10:00:00.000Z",
            )
        )
        await session.flush()

        response = await client.get(
            f"{API}/reports/quarterly/decisions-csv",
            headers=owner_headers,
            params={"year": 2024, "quarter": 1},
        )

        lines = response.text.split("\n")
        assert lines[1] == (
            '"Alice","Platform","promote","approved","Lead \'platform\'",'
            '"2024-02-01T10:00:00.000Z","2024-02-02T10:00:00.000Z"'
        )

    async def test_manager_is_forbidden(self, client, manager_headers):
        response = await client.get(
            f"{API}/reports/quarterly/decisions-csv",
            headers=manager_headers,
            params={"year": 2024, "quarter": 1},
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "ACCESS_DENIED"


class TestMemberEndpoints:
    async def test_last_owner_cannot_leave(self, client, owner_headers, seed):
        response = await client.delete(f"{API}/members/{seed.owner.id}", headers=owner_headers)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CANNOT_REMOVE_LAST_OWNER"

    async def test_manager_cannot_change_roles(self, client, manager_headers, seed):
        response = await client.patch(
            f"{API}/members/{seed.owner.id}", headers=manager_headers, json={"role": "member"}
        )

        assert response.status_code == 403


class TestManagerEndpoints:
    async def test_home_for_user_without_team(self, client, owner_headers, session):
        response = await client.get(f"{API}/manager/home", headers=owner_headers)

        assert response.status_code == 200
        home = response.json()["home"]
        assert home["summary"]["team_id"] is None
        assert home["employees"] == []

    async def test_agenda_window_limit(self, client, manager_headers):
        response = await client.get(
            f"{API}/manager/agenda",
            headers=manager_headers,
            params={"start": "2024-01-01T00:00:00Z", "end": "2024-06-01T00:00:00Z"},
        )

        assert response.status_code == 400

