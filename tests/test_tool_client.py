"""
Unit tests for the HTTP tool client.
"""

import pytest
import requests
from unittest.mock import Mock

from core.impact.tool_client import HttpToolClient, ToolCallError, ToolClientProtocol


class TestHttpToolClient:
    """Test tool calls over HTTP"""

    def setup_method(self):
        self.session = Mock(spec=requests.Session)
        self.response = Mock()
        self.response.raise_for_status.return_value = None
        self.session.post.return_value = self.response
        self.client = HttpToolClient("http://localhost:3333/", timeout=5.0, session=self.session)

    def test_implements_protocol(self):
        assert isinstance(self.client, ToolClientProtocol)
        assert self.client.endpoint == "http://localhost:3333/tools/call"

    @pytest.mark.asyncio
    async def test_posts_name_and_arguments(self):
        self.response.json.return_value = {"result": {"isUpToDate": True}}

        result = await self.client.call_tool("index_status", {"projectId": "demo"})

        assert result == {"isUpToDate": True}
        args, kwargs = self.session.post.call_args
        assert args[0] == "http://localhost:3333/tools/call"
        assert kwargs["json"] == {"name": "index_status", "arguments": {"projectId": "demo"}}
        assert kwargs["timeout"] == 5.0

    @pytest.mark.asyncio
    async def test_unwrapped_payload(self):
        self.response.json.return_value = {"entities": []}

        assert await self.client.call_tool("entity_search", {}) == {"entities": []}

    @pytest.mark.asyncio
    async def test_non_dict_result_is_wrapped(self):
        self.response.json.return_value = {"result": [1, 2]}

        assert await self.client.call_tool("x", {}) == {"result": [1, 2]}

    @pytest.mark.asyncio
    async def test_error_payload(self):
        self.response.json.return_value = {"error": "unknown project"}

        with pytest.raises(ToolCallError, match="unknown project"):
            await self.client.call_tool("index_status", {})

    @pytest.mark.asyncio
    async def test_http_error(self):
        self.response.raise_for_status.side_effect = requests.HTTPError("500 Server Error")

        with pytest.raises(ToolCallError, match="500"):
            await self.client.call_tool("index_files", {})

    @pytest.mark.asyncio
    async def test_connection_error(self):
        self.session.post.side_effect = requests.ConnectionError("refused")

        with pytest.raises(ToolCallError, match="refused"):
            await self.client.call_tool("index_files", {})

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        self.response.json.side_effect = ValueError("No JSON")

        with pytest.raises(ToolCallError):
            await self.client.call_tool("index_files", {})

    @pytest.mark.asyncio
    async def test_non_object_payload(self):
        self.response.json.return_value = ["not", "an", "object"]

        with pytest.raises(ToolCallError, match="expected object"):
            await self.client.call_tool("index_files", {})

    def test_close(self):
        self.client.close()
        self.session.close.assert_called_once()
