"""存储模块测试"""

import pytest

from orion.storage import ChatMessage, Conversation, KeyValueStore, Settings, init_database


@pytest.fixture
async def db(db_path):
    """创建临时数据库"""
    database = await init_database(db_path)
    yield database
    await database.close()


@pytest.fixture
async def store(db):
    """创建键值存储"""
    return KeyValueStore(db)


class TestKeyValueStore:
    """键值存储测试"""

    async def test_save_and_load(self, store):
        """测试保存后读取"""
        await store.save("settings", {"selected_model": "gpt-4o"})
        assert await store.load("settings") == {"selected_model": "gpt-4o"}

    async def test_load_missing(self, store):
        """测试读取不存在的键"""
        assert await store.load("missing") is None
        assert await store.load("missing", []) == []

    async def test_last_write_wins(self, store):
        """测试后写覆盖先写"""
        await store.save("k", 1)
        await store.save("k", 2)
        assert await store.load("k") == 2
        assert await store.keys() == ["k"]

    async def test_delete(self, store):
        """测试删除"""
        await store.save("k", "v")
        assert await store.delete("k") is True
        assert await store.delete("k") is False
        assert await store.load("k") is None

    async def test_clear(self, store):
        """测试清空"""
        await store.save("a", 1)
        await store.save("b", 2)
        await store.clear()
        assert await store.keys() == []

    async def test_persists_across_connections(self, db_path):
        """测试重新打开数据库后数据仍在"""
        database = await init_database(db_path)
        await KeyValueStore(database).save("k", {"中文": True})
        await database.close()

        database = await init_database(db_path)
        try:
            assert await KeyValueStore(database).load("k") == {"中文": True}
        finally:
            await database.close()


class TestModels:
    """数据模型测试"""

    def test_conversation_dict(self):
        """测试对话序列化"""
        conversation = Conversation(
            title="测试",
            model="gpt-4o",
            messages=[
                ChatMessage(role="user", content="你好"),
                ChatMessage(role="assistant", content="你好！", model="gpt-4o"),
            ],
        )

        restored = Conversation.from_dict(conversation.to_dict())

        assert restored == conversation
        assert "model" not in conversation.messages[0].to_dict()

    def test_settings_dict(self):
        """测试设置序列化"""
        settings = Settings(api_key="sk-test", selected_model="gpt-4o")
        assert Settings.from_dict(settings.to_dict()) == settings
