# tests/conftest.py
"""
ChatEdit 测试配置和共享 fixtures
"""

import os
from pathlib import Path
from typing import List, Optional, Sequence

import pytest

from chatedit.core.config import ChatEditConfig
from chatedit.core.llm import LLMClient
from chatedit.core.models import ChatTurn


def file_block(path: str, content: str) -> str:
    """按提示词要求的格式生成一个文件块"""
    return (
        f"```FILEPATH: {path}\n"
        f"<<FILE_CONTENT_START>>\n"
        f"{content}\n"
        f"<<FILE_CONTENT_END>>\n"
        f"```\n"
    )


class FakeLLMClient(LLMClient):
    """按顺序返回预设响应的 LLMClient；响应是异常时抛出"""

    def __init__(self, responses: Optional[List] = None):
        self.responses = list(responses or [])
        self.calls: List[dict] = []

    def send_message(self, history: Sequence[ChatTurn], message: str) -> str:
        self.calls.append({"history": list(history), "message": message})
        response = self.responses.pop(0) if self.responses else "No changes needed based on the request."
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def project_root(tmp_path) -> Path:
    """一个空的项目根目录"""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def isolated_filesystem(project_root):
    """切换当前工作目录到临时项目目录，测试结束后恢复"""
    original_cwd = os.getcwd()
    os.chdir(project_root)
    yield project_root
    os.chdir(original_cwd)


@pytest.fixture
def test_config() -> ChatEditConfig:
    return ChatEditConfig(api_key="sk-test", model_name="test-model", retry_delay=0)


@pytest.fixture
def fake_client() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def runner():
    """提供一个 Click CliRunner 实例用于测试 CLI 命令"""
    from click.testing import CliRunner
    return CliRunner()
