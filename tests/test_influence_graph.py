import asyncio
from types import SimpleNamespace

from app.services.relations_service import InfluenceGraphBuilder


def _builder(edges, missing=()):
    """Builder over (mentor, student) edges; ``missing`` ids have no animator row."""
    fetched = []

    async def load_animator(animator_id):
        fetched.append(animator_id)
        if animator_id in missing:
            return None
        return SimpleNamespace(
            id=animator_id,
            slug=f"slug-{animator_id}",
            name=f"Animator {animator_id}",
            native_name=None,
            photo_url=None,
        )

    async def load_outgoing(animator_id):
        return [(student, "MENTOR") for mentor, student in edges if mentor == animator_id]

    async def load_incoming(animator_id):
        return [(mentor, "MENTOR") for mentor, student in edges if student == animator_id]

    return InfluenceGraphBuilder(load_animator, load_outgoing, load_incoming), fetched


def _build(builder, root, depth=2, max_nodes=30):
    return asyncio.run(builder.build(root, depth=depth, max_nodes=max_nodes))


def test_root_is_marked_current():
    builder, _ = _builder([("a", "b")])
    graph = _build(builder, "a")

    current = [n.id for n in graph.nodes if n.isCurrent]
    assert current == ["a"]
    assert graph.nodes[0].id == "a"


def test_links_carry_direction():
    builder, _ = _builder([("m", "x"), ("x", "s")])
    graph = _build(builder, "x", depth=1)

    links = {(l.source, l.target, l.type) for l in graph.links}
    assert ("x", "s", "mentor_to") in links
    assert ("x", "m", "mentored_by") in links


def test_max_nodes_caps_a_large_graph():
    # A star of 40 students, each with 5 students of their own
    edges = [("root", f"s{i}") for i in range(40)]
    edges += [(f"s{i}", f"s{i}-{j}") for i in range(40) for j in range(5)]
    builder, _ = _builder(edges)

    graph = _build(builder, "root", depth=3, max_nodes=5)

    assert len(graph.nodes) == 5
    node_ids = {n.id for n in graph.nodes}
    assert all(l.source in node_ids and l.target in node_ids for l in graph.links)


def test_depth_limits_traversal():
    builder, _ = _builder([("a", "b"), ("b", "c"), ("c", "d")])

    graph = _build(builder, "a", depth=1)

    assert [n.id for n in graph.nodes] == ["a", "b"]


def test_cycles_visit_each_animator_once():
    builder, fetched = _builder([("a", "b"), ("b", "c"), ("c", "a")])

    graph = _build(builder, "a", depth=3)

    assert sorted(n.id for n in graph.nodes) == ["a", "b", "c"]
    assert sorted(fetched) == ["a", "b", "c"]


def test_links_are_not_duplicated():
    # Each edge is seen from both ends
    builder, _ = _builder([("a", "b"), ("b", "a")])

    graph = _build(builder, "a", depth=2)

    keys = [(l.source, l.target, l.type) for l in graph.links]
    assert len(keys) == len(set(keys))


def test_missing_animator_is_skipped():
    builder, _ = _builder([("a", "ghost"), ("a", "b")], missing={"ghost"})

    graph = _build(builder, "a")

    assert [n.id for n in graph.nodes] == ["a", "b"]
    assert all("ghost" not in (l.source, l.target) for l in graph.links)


def test_isolated_animator_has_only_itself():
    builder, _ = _builder([])

    graph = _build(builder, "solo")

    assert [n.id for n in graph.nodes] == ["solo"]
    assert graph.links == []
