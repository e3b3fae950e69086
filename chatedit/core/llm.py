# chatedit/core/llm.py
"""
LLM 客户端接口。
EditSession 只依赖 LLMClient 抽象：传入规范化的历史和本轮消息，返回一段响应文本。
OpenAIClient 是基于 openai SDK 的默认实现。
"""
import json
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from openai import OpenAI
from openai import APIConnectionError, APIError, APITimeoutError

from .config import ChatEditConfig
from .models import ChatTurn, Role


class UpstreamError(RuntimeError):
    """
    LLM 调用失败或响应被内容安全策略拦截。
    只影响当前这一轮对话，feedback 中保存安全策略等附加信息。
    """

    def __init__(self, message: str, feedback: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.feedback = feedback

    def describe(self) -> str:
        text = str(self)
        if self.feedback:
            text += f" (Prompt Feedback: {json.dumps(self.feedback, ensure_ascii=False)})"
        return text


class LLMClient(ABC):
    """聊天会话抽象：一次请求对应一段响应文本"""

    @abstractmethod
    def send_message(self, history: Sequence[ChatTurn], message: str) -> str:
        """
        发送本轮消息。

        Args:
            history: 严格 user/model 交替的历史（不含本轮消息）。
            message: 本轮完整提示词。

        Returns:
            str: 模型响应文本。

        Raises:
            UpstreamError: 调用失败或响应被拦截。
        """
        pass


def to_openai_messages(history: Sequence[ChatTurn], message: str) -> List[Dict[str, str]]:
    messages = []
    for turn in history:
        if turn.role is Role.USER:
            messages.append({"role": "user", "content": turn.text})
        elif turn.role is Role.MODEL:
            messages.append({"role": "assistant", "content": turn.text})
    messages.append({"role": "user", "content": message})
    return messages


class OpenAIClient(LLMClient):
    """
    基于 OpenAI Chat Completions 的 LLMClient 实现。
    超时和连接错误按 max_retries 重试，其它错误直接转换为 UpstreamError。
    """

    def __init__(self, config: ChatEditConfig, client: Optional[OpenAI] = None):
        missing = config.missing_settings()
        if missing and client is None:
            raise ValueError(f"{' and '.join(missing)} not configured.")
        self.config = config
        self.model_name = config.model_name
        self.max_retries = max(int(config.max_retries), 1)
        self.retry_delay = config.retry_delay
        self._client = client or OpenAI(
            api_key=config.api_key,
            base_url=config.base_url,
            timeout=config.timeout,
            max_retries=0,
        )

    def send_message(self, history: Sequence[ChatTurn], message: str) -> str:
        messages = to_openai_messages(history, message)
        last_error: Optional[Exception] = None
        for attempt in range(self.max_retries):
            try:
                return self._complete(messages)
            except (APITimeoutError, APIConnectionError) as e:
                last_error = e
                if attempt < self.max_retries - 1:
                    time.sleep(self.retry_delay)
            except APIError as e:
                raise UpstreamError(str(e), feedback=_error_feedback(e)) from e
        raise UpstreamError(f"LLM request failed after {self.max_retries} attempts: {last_error}") from last_error

    def _complete(self, messages: List[Dict[str, str]]) -> str:
        response = self._client.chat.completions.create(
            model=self.model_name,
            messages=messages,
            max_tokens=self.config.max_output_tokens,
        )
        if not response.choices:
            raise UpstreamError("Model returned no candidates.")
        choice = response.choices[0]
        refusal = getattr(choice.message, "refusal", None)
        if choice.finish_reason == "content_filter" or refusal:
            feedback = {"finish_reason": choice.finish_reason}
            if refusal:
                feedback["refusal"] = refusal
            raise UpstreamError(
                "Response blocked by content safety filtering.", feedback=feedback
            )
        return choice.message.content or ""


def _error_feedback(error: APIError) -> Optional[Dict[str, Any]]:
    body = getattr(error, "body", None)
    if isinstance(body, dict) and body:
        return body
    return None
