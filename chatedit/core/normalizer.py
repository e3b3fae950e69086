# chatedit/core/normalizer.py
"""
对话规范化：把界面中累积的原始对话记录转换为严格 user/model 交替的历史，
以满足有状态聊天 API 的要求。

规范化过程从不报错：不合规的消息直接丢弃，而不是拒绝整段对话。
"""

from typing import List, Optional, Sequence, Tuple

from .models import ChatTurn, Role


class TranscriptError(ValueError):
    """当前待发送的消息不满足约定（为空或不是 user 角色）"""


def normalize_history(transcript: Sequence[ChatTurn]) -> List[ChatTurn]:
    """
    返回从第一条 user 消息开始、严格交替的历史。

    - system 消息总是跳过，不影响交替状态；
    - 连续第二条 user 消息被丢弃（不合并）；
    - 前面没有 user 的 model 消息被丢弃。
    """
    start = next((i for i, turn in enumerate(transcript) if turn.role is Role.USER), None)
    if start is None:
        return []

    history: List[ChatTurn] = []
    last_role: Optional[Role] = None
    for turn in transcript[start:]:
        role = turn.role
        if role is Role.SYSTEM:
            continue
        elif role is Role.USER:
            if last_role is None or last_role is Role.MODEL:
                history.append(ChatTurn(Role.USER, list(turn.segments)))
                last_role = Role.USER
        elif role is Role.MODEL:
            if last_role is Role.USER:
                history.append(ChatTurn(Role.MODEL, list(turn.segments)))
                last_role = Role.MODEL
        else:
            raise AssertionError(f"unhandled role: {role!r}")
    return history


def split_current_turn(transcript: Sequence[ChatTurn]) -> Tuple[List[ChatTurn], ChatTurn]:
    """把最后一条（待回复的）消息从对话记录中分离出来"""
    if not transcript:
        raise TranscriptError("Conversation history is empty.")
    current = transcript[-1]
    if current.role is not Role.USER:
        raise TranscriptError("Internal - last message expected to be user.")
    return list(transcript[:-1]), current


def build_history(transcript: Sequence[ChatTurn]) -> Tuple[List[ChatTurn], str]:
    """返回 (规范化后的历史, 当前指令文本)"""
    before_current, current = split_current_turn(transcript)
    return normalize_history(before_current), current.text
