# chatedit/core/session.py
"""
EditSession: 一个打开的编辑会话。

一轮对话的流程：
    规范化历史 → 读取目标文件 → 渲染提示词 → 调用 LLM → 提取文件块 → 应用修改

会话有明确的生命周期（open_project / close），可以同时存在多个会话。
同一会话同一时间只允许一轮对话在进行中。
"""

import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from .applier import ChangeApplicator
from .config import ChatEditConfig, ConfigError, load_config
from .extractor import BlockExtractor, RegexBlockExtractor
from .llm import LLMClient, OpenAIClient, UpstreamError
from .models import ChatResult, ChatTurn, FileListing
from .normalizer import TranscriptError, build_history
from .prompt import PromptBuilder, parse_target_files
from .workspace import LocalWorkspace, Workspace


class TurnInProgressError(RuntimeError):
    """上一轮对话（网络请求或文件写入）尚未结束"""


TurnLike = Union[ChatTurn, Dict[str, Any]]


def _to_turns(conversation: Sequence[TurnLike]) -> List[ChatTurn]:
    turns = []
    for entry in conversation:
        turn = entry if isinstance(entry, ChatTurn) else ChatTurn.from_dict(entry)
        if turn is not None:
            turns.append(turn)
    return turns


class EditSession:
    """
    对话式代码编辑会话。
    """

    def __init__(
        self,
        root: Union[str, Path] = ".",
        config: Optional[ChatEditConfig] = None,
        client: Optional[LLMClient] = None,
        extractor: Optional[BlockExtractor] = None,
        on_status: Optional[Callable[[str], None]] = None,
        verbose: bool = False,
    ):
        """
        Args:
            root: 项目根目录。
            config: 配置；为 None 时从 root 下的 .chatedit/config.yaml 加载。
            client: LLM 客户端；为 None 时在第一次提交时按配置创建 OpenAIClient。
            extractor: 文件块提取器，默认 RegexBlockExtractor。
            on_status: 进度消息回调。
            verbose: 为 True 时通过 on_status 额外输出每轮发送的历史摘要。
        """
        self.on_status = on_status
        self.verbose = verbose
        self.extractor = extractor or RegexBlockExtractor()
        self._explicit_config = config
        self._client = client
        self._turn_lock = threading.Lock()
        self.transcript: List[ChatTurn] = []
        self.open_project(root)

    # ==================== 生命周期 ====================

    def open_project(self, root: Union[str, Path]) -> None:
        """切换到新的项目根目录并清空对话记录"""
        if self._turn_lock.locked():
            raise TurnInProgressError("Cannot open a project while a request is in progress.")
        self.workspace: Workspace = LocalWorkspace(root)
        self.config = self._explicit_config or load_config(self.workspace.root)
        self.prompt_builder = PromptBuilder(self.workspace)
        self.applicator = ChangeApplicator(self.workspace, on_status=self._status)
        self.transcript = []
        self._closed = False

    def close(self) -> None:
        self.transcript = []
        self._client = None
        self._closed = True

    def __enter__(self) -> "EditSession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def root(self) -> Path:
        return self.workspace.root

    @property
    def busy(self) -> bool:
        return self._turn_lock.locked()

    # ==================== 对外操作 ====================

    def refresh_files(self) -> FileListing:
        """列出工作区文件"""
        return self.workspace.list_files(
            limit=self.config.file_limit,
            exclude_patterns=self.config.exclude_patterns,
        )

    def ask(self, instruction: str, target_files: str = "") -> ChatResult:
        """
        把 instruction 作为新的 user 消息追加到会话记录并提交。
        成功时模型回复作为 model 消息记录；失败时错误信息作为 system 注释记录，
        对话记录保留，用户可以直接重试。
        """
        if self._closed:
            raise RuntimeError("Session is closed.")
        self.transcript.append(ChatTurn.user(instruction))
        try:
            result = self.submit(self.transcript, target_files)
        except TurnInProgressError as e:
            self.transcript.append(ChatTurn.system(str(e)))
            raise
        if result.success:
            self.transcript.append(ChatTurn.model(result.text))
        else:
            self.transcript.append(ChatTurn.system(result.text))
        for failed in result.failed_results:
            self.transcript.append(ChatTurn.system(f"Error writing file {failed.path}: {failed.message}"))
        return result

    def submit(self, conversation: Sequence[TurnLike], target_files: str = "") -> ChatResult:
        """
        处理一轮对话。conversation 的最后一条必须是待回复的 user 消息。
        消息可以是 ChatTurn，也可以是 {"role": ..., "parts": [{"text": ...}]} 形式的字典；
        角色无法识别的字典消息被丢弃。

        Raises:
            TurnInProgressError: 本会话已有一轮对话在进行中。
        """
        if self._closed:
            raise RuntimeError("Session is closed.")
        if not self._turn_lock.acquire(blocking=False):
            raise TurnInProgressError("A previous request is still being processed.")
        try:
            return self._run_turn(conversation, target_files)
        finally:
            self._turn_lock.release()

    # ==================== 内部实现 ====================

    def _status(self, message: str) -> None:
        if self.on_status:
            self.on_status(message)

    def _get_client(self) -> LLMClient:
        if self._client is None:
            missing = self.config.missing_settings()
            if missing:
                raise ConfigError(
                    f"{' and '.join(missing)} not configured. "
                    "Please set it in .chatedit/config.yaml or the environment."
                )
            self._client = OpenAIClient(self.config)
        return self._client

    def _run_turn(self, conversation: Sequence[TurnLike], target_files: str) -> ChatResult:
        try:
            client = self._get_client()
        except ConfigError as e:
            return ChatResult(success=False, text=str(e))

        try:
            history, instruction = build_history(_to_turns(conversation))
        except TranscriptError as e:
            return ChatResult(success=False, text=f"Error: {e}")

        paths = parse_target_files(target_files)
        if paths:
            self._status(f"Reading target files: {', '.join(paths)}")
        prompt = self.prompt_builder.build(instruction, paths)

        if self.verbose:
            summary = [f"{turn.role.value}: {turn.text[:50]}..." for turn in history]
            self._status(f"History for this turn (length {len(history)}): {summary}")
        self._status("Sending prompt to the model...")

        try:
            response_text = client.send_message(history, prompt)
        except UpstreamError as e:
            return ChatResult(success=False, text=f"Error processing chat request: {e.describe()}")
        except Exception as e:
            return ChatResult(
                success=False,
                text=f"Error processing chat request: {str(e) or 'Unknown error'}",
            )

        self._status("Received response from the model. Processing...")
        extraction = self.extractor.extract(response_text)

        results = []
        if extraction.edits:
            results = self.applicator.apply(extraction.edits)
        elif extraction.is_malformed:
            self._status(
                f"Response contained {extraction.unmatched_fences} incomplete file block(s); nothing was applied."
            )
        elif extraction.acknowledges_no_changes:
            self._status("No changes needed.")

        return ChatResult(
            success=True,
            text=response_text,
            edits=extraction.edits,
            apply_results=results,
        )
