"""
Mock portfolio API server for local development and integration tests.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Body
from fastapi.responses import JSONResponse

from shared.logging import get_logger


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _message(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


class MockPortfolioServer:
    """Mock portfolio API implementation.

    Data lives in memory. There is no authentication: every caller may use
    the admin routes.
    """

    PROJECT_FIELDS = ("projectName", "projectImage", "projectLink", "projectGithub", "projectDescription")
    ABOUT_FIELDS = ("name", "title", "resume", "bio", "quote", "userImg", "resumeSummary", "skillCategories")

    def __init__(self, port: int = 3000, author_id: str = "author-1"):
        self.port = port
        self.author_id = author_id
        self.logger = get_logger("mock.portfolio")
        self.app = FastAPI(title="Mock Portfolio API", version="1.0.0")

        self.about_user: Optional[Dict[str, Any]] = None
        self.projects: List[Dict[str, Any]] = []
        self._failures: List[int] = []

        self._setup_routes()

    def fail_next(self, status_code: int = 500, times: int = 1) -> None:
        """Make the next ``times`` public GETs answer ``status_code``."""
        self._failures.extend([status_code] * times)

    def _injected_failure(self) -> Optional[JSONResponse]:
        if not self._failures:
            return None
        status_code = self._failures.pop(0)
        self.logger.info("Injected failure", status_code=status_code)
        return _message(status_code, f"Injected failure ({status_code})")

    def set_about_user(self, **fields: Any) -> Dict[str, Any]:
        now = _now()
        if self.about_user is None:
            self.about_user = {
                "id": str(uuid.uuid4()),
                "name": None,
                "title": None,
                "resume": None,
                "bio": None,
                "quote": None,
                "userImg": None,
                "resumeSummary": "",
                "skillCategories": [],
                "createdAt": now,
            }
        self.about_user.update({k: v for k, v in fields.items() if k in self.ABOUT_FIELDS})
        self.about_user["updatedAt"] = now
        return self.about_user

    def add_project(self, **fields: Any) -> Dict[str, Any]:
        now = _now()
        project = {field: fields.get(field) for field in self.PROJECT_FIELDS}
        project.update({
            "id": str(uuid.uuid4()),
            "authorId": self.author_id,
            "createdAt": now,
            "updatedAt": now,
        })
        # Newest first, like the real listing
        self.projects.insert(0, project)
        return project

    def _find_project(self, project_id: str) -> Optional[Dict[str, Any]]:
        return next((p for p in self.projects if p["id"] == project_id), None)

    def _setup_routes(self):
        """Set up mock portfolio routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "mock-portfolio",
                "message": "Mock portfolio API for the showcase service",
                "version": "1.0.0"
            }

        @self.app.get("/api/public/about")
        async def public_about():
            failure = self._injected_failure()
            if failure is not None:
                return failure
            if self.about_user is None:
                return _message(404, "About user info not found")
            return {"aboutUser": self.about_user}

        @self.app.get("/api/projects")
        async def list_projects():
            failure = self._injected_failure()
            if failure is not None:
                return failure
            return {"projects": self.projects}

        @self.app.post("/api/about")
        async def save_about(payload: Dict[str, Any] = Body(...)):
            return {"aboutUser": self.set_about_user(**payload)}

        @self.app.post("/api/projects")
        async def create_project(payload: Dict[str, Any] = Body(...)):
            if not payload.get("projectName"):
                return _message(400, "Project name is required")
            return JSONResponse(status_code=201, content={"project": self.add_project(**payload)})

        @self.app.put("/api/projects/{project_id}")
        async def update_project(project_id: str, payload: Dict[str, Any] = Body(...)):
            project = self._find_project(project_id)
            if project is None:
                return _message(404, "Project not found")
            project.update({k: v for k, v in payload.items() if k in self.PROJECT_FIELDS})
            project["updatedAt"] = _now()
            return {"project": project}

        @self.app.delete("/api/projects/{project_id}")
        async def delete_project(project_id: str):
            project = self._find_project(project_id)
            if project is None:
                return _message(404, "Project not found")
            self.projects.remove(project)
            return {"message": "Project deleted successfully"}


def create_app():
    """Create mock portfolio application."""
    server = MockPortfolioServer()
    return server.app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=3000)
