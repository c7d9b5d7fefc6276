from songguess.store import SERVER_TIMESTAMP, MemoryStore


def test_subscribe_delivers_current_value_then_changes(run):
    async def scenario():
        store = MemoryStore()
        seen = []
        await store.set_document("a/1", {"x": 1})
        unsubscribe = await store.subscribe("a/1", lambda doc: seen.append(doc and doc.data))
        await store.set_document("a/1", {"y": 2}, merge=True)
        await store.delete_document("a/1")
        unsubscribe()
        await store.set_document("a/1", {"z": 3})
        return seen

    assert run(scenario()) == [{"x": 1}, {"x": 1, "y": 2}, None]


def test_missing_document_is_delivered_as_none(run):
    async def scenario():
        store = MemoryStore()
        seen = []
        await store.subscribe("a/missing", seen.append)
        return seen

    assert run(scenario()) == [None]


def test_set_without_merge_replaces(run):
    async def scenario():
        store = MemoryStore()
        await store.set_document("a/1", {"x": 1, "y": 1})
        await store.set_document("a/1", {"y": 2})
        return (await store.get_document("a/1")).data

    assert run(scenario()) == {"y": 2}


def test_server_timestamps_strictly_increase(run):
    async def scenario():
        store = MemoryStore()
        stamps = []
        for _ in range(5):
            await store.set_document("a/1", {"at": SERVER_TIMESTAMP}, merge=True)
            stamps.append((await store.get_document("a/1")).data["at"])
        return stamps

    stamps = run(scenario())
    assert all(a < b for a, b in zip(stamps, stamps[1:]))


def test_query_filters_orders_and_limits(run):
    async def scenario():
        store = MemoryStore()
        await store.set_document("songs/1", {"title": "b", "kind": "x"})
        await store.set_document("songs/2", {"title": "a", "kind": "x"})
        await store.set_document("songs/3", {"title": "c", "kind": "y"})
        await store.set_document("songs/3/sub/4", {"title": "nested", "kind": "x"})
        ordered = await store.query_collection("songs", order_by="title")
        filtered = await store.query_collection("songs", filters=[("kind", "x")], order_by="title", descending=True)
        limited = await store.query_collection("songs", order_by="title", limit=1)
        return ordered, filtered, limited

    ordered, filtered, limited = run(scenario())
    assert [d.id for d in ordered] == ["2", "1", "3"]
    assert [d.id for d in filtered] == ["1", "2"]
    assert [d.id for d in limited] == ["2"]


def test_collection_subscription_follows_adds_and_deletes(run):
    async def scenario():
        store = MemoryStore()
        seen = []
        await store.subscribe_collection("players", lambda docs: seen.append([d.data["name"] for d in docs]), order_by="name")
        doc_id = await store.add_document("players", {"name": "Bo"})
        await store.add_document("players", {"name": "Al"})
        await store.delete_document(f"players/{doc_id}")
        return seen

    assert run(scenario()) == [[], ["Bo"], ["Al", "Bo"], ["Al"]]


def test_returned_documents_are_copies(run):
    async def scenario():
        store = MemoryStore()
        await store.set_document("a/1", {"ids": ["x"]})
        doc = await store.get_document("a/1")
        doc.data["ids"].append("y")
        return (await store.get_document("a/1")).data

    assert run(scenario()) == {"ids": ["x"]}
