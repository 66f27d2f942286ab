"""
Test configuration and fixtures for mandalart tests.
"""
import asyncio

import pytest
from fastapi.testclient import TestClient

from mandalart.main import app
from mandalart.dependencies import get_project_store, get_workspace_registry
from mandalart.application.project_session import ProjectSession, WorkspaceRegistry
from mandalart.domain.entities import Actor, Node, NodeDraft, NodeType
from mandalart.domain.events import event_publisher
from mandalart.storage import InMemoryProjectStore

PROJECT_ID = "project-1"


@pytest.fixture(autouse=True)
def clean_event_publisher():
    """Keep handlers registered by one test from leaking into the next."""
    event_publisher.clear_subscribers()
    yield
    event_publisher.clear_subscribers()


@pytest.fixture
def store():
    """Fresh in-memory project store."""
    return InMemoryProjectStore()


@pytest.fixture
def session(store):
    """Session subscribed to the test project."""
    session = ProjectSession(store)
    session.open(PROJECT_ID)
    yield session
    session.close()


@pytest.fixture
def owner():
    return Actor(user_id="owner-1", user_name="Olivia")


@pytest.fixture
def member():
    return Actor(user_id="member-1", user_name="Max")


@pytest.fixture
def tree(session):
    """
    R (root, depth 0)
    ├── G1 (slot 1, depth 1)
    │   └── T1 (TASK, slot 2, depth 2)
    └── G2 (slot 5, depth 1)
        └── G3 (slot 1, depth 2)
            └── T3 (TASK, slot 8, depth 3)
    """
    mutator = session.mutator

    async def build():
        ids = {}
        ids["R"] = await mutator.create_node(None, 0, NodeDraft(title="R"))
        ids["G1"] = await mutator.create_node(ids["R"], 1, NodeDraft(title="G1", description="first"))
        ids["T1"] = await mutator.create_node(ids["G1"], 2, NodeDraft(title="T1", node_type=NodeType.TASK))
        ids["G2"] = await mutator.create_node(ids["R"], 5, NodeDraft(title="G2"))
        ids["G3"] = await mutator.create_node(ids["G2"], 1, NodeDraft(title="G3"))
        ids["T3"] = await mutator.create_node(ids["G3"], 8, NodeDraft(title="T3", node_type=NodeType.TASK))
        return ids

    return asyncio.run(build())


@pytest.fixture
def make_node():
    """Build detached Node entities for repository-level tests."""
    def factory(node_id, parent_id=None, depth=0, slot=0, node_type=NodeType.GOAL,
                progress=0, project_id=PROJECT_ID):
        return Node(
            id=node_id,
            project_id=project_id,
            parent_id=parent_id,
            depth=depth,
            slot_index=slot,
            title=node_id.upper(),
            node_type=node_type,
            progress=progress,
        )
    return factory


@pytest.fixture
def check_invariants():
    """Assert the structural invariants of a repository."""
    def check(repository):
        nodes = repository.nodes()
        roots = [n for n in nodes if n.parent_id is None]
        assert len(roots) <= 1
        for root in roots:
            assert root.depth == 0
        for node in nodes:
            if node.parent_id is not None:
                parent = repository.get(node.parent_id)
                assert parent is not None, f"dangling parent for {node.id}"
                assert node.depth == parent.depth + 1
            siblings = [n.slot_index for n in repository.children_of(node.id)]
            assert len(siblings) == len(set(siblings))
            assert node.id not in repository.ancestor_ids(node.parent_id)
    return check


@pytest.fixture
def client(store):
    """Test client bound to an isolated store."""
    registry = WorkspaceRegistry(store)
    app.dependency_overrides[get_workspace_registry] = lambda: registry
    app.dependency_overrides[get_project_store] = lambda: store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    registry.close_all()
