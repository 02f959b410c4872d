import unittest

from helpers import ApiTestCase


class TestProjects(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.user_id, self.headers = self.register("rita")

    def create(self, name="Beach", **extra):
        payload = {"name": name, **extra}
        resp = self.client.post("/api/projects", json=payload, headers=self.headers)
        self.assertEqual(resp.status_code, 200, resp.text)
        return resp.json()

    def test_create_and_list(self):
        self.create("First", projectData={"layers": [1, 2]}, thumbnailUrl="https://cdn.example.com/t.png")
        self.create("Second")
        resp = self.client.get("/api/projects", headers=self.headers)
        self.assertEqual(resp.status_code, 200)
        names = {p["name"] for p in resp.json()}
        self.assertEqual(names, {"First", "Second"})
        first = next(p for p in resp.json() if p["name"] == "First")
        self.assertEqual(first["projectData"], {"layers": [1, 2]})

    def test_update(self):
        project = self.create()
        resp = self.client.patch(
            f"/api/projects/{project['id']}",
            json={"name": "Sunset", "projectData": {"brightness": 40}},
            headers=self.headers,
        )
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["name"], "Sunset")
        self.assertEqual(body["projectData"], {"brightness": 40})

    def test_delete(self):
        project = self.create()
        resp = self.client.delete(f"/api/projects/{project['id']}", headers=self.headers)
        self.assertEqual(resp.status_code, 204)
        self.assertEqual(self.client.get("/api/projects", headers=self.headers).json(), [])

    def test_other_users_projects_are_invisible(self):
        project = self.create()
        _other, other_headers = self.register("sam")
        self.assertEqual(self.client.get("/api/projects", headers=other_headers).json(), [])
        resp = self.client.delete(f"/api/projects/{project['id']}", headers=other_headers)
        self.assertEqual(resp.status_code, 404)

    def test_name_required(self):
        resp = self.client.post("/api/projects", json={"name": ""}, headers=self.headers)
        self.assertEqual(resp.status_code, 400)

    def test_requires_authentication(self):
        self.assertEqual(self.client.get("/api/projects").status_code, 401)


if __name__ == "__main__":
    unittest.main()
