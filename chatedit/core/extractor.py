# chatedit/core/extractor.py
"""
从 LLM 的自由文本响应中提取文件块。

文件块格式（提示词中要求模型使用的格式）::

    ```FILEPATH: path/to/file.ext
    <<FILE_CONTENT_START>>
    ...文件完整内容...
    <<FILE_CONTENT_END>>
    ```

LLM 的输出格式没有任何保证，因此解析是“全函数”：
无法识别或残缺的块直接忽略，最坏结果是“没有找到任何修改”，从不抛出异常。

内容中不能出现 <<FILE_CONTENT_START>>：正则不允许跨过另一个 START 标记，
这样缺少 END 的残缺块不会吞掉后面的块。代价是内容本身包含该标记的块
（例如修改提示词模板本身）不会被识别，只计入 unmatched_fences。
"""

import re
from abc import ABC, abstractmethod
from typing import Iterator, List

from .models import ExtractionResult, FileEdit

FENCE_OPENER = "```FILEPATH:"
CONTENT_START = "<<FILE_CONTENT_START>>"
CONTENT_END = "<<FILE_CONTENT_END>>"

# 文件块正则（命名分组）:
#   path    - FILEPATH: 之后同一行的内容
#   content - START/END 标记之间的内容，非贪婪；
#             不允许跨过另一个 START 标记，这样缺少 END 的残缺块不会吞掉后面的块
FILE_BLOCK_PATTERN = re.compile(
    r"```FILEPATH:[ \t]*(?P<path>[^\n]*)\n"
    r"\s*<<FILE_CONTENT_START>>"
    r"(?P<content>(?:(?!<<FILE_CONTENT_START>>).)*?)"
    r"<<FILE_CONTENT_END>>\s*```",
    re.DOTALL,
)

_LEADING_BLANK_LINE = re.compile(r"\A[ \t]*\r?\n")
_TRAILING_BLANK_LINE = re.compile(r"\r?\n[ \t]*\Z")

NO_CHANGES_PHRASE = "no changes needed"


def clean_content(content: str) -> str:
    """去掉围栏格式带来的至多一个前导空行和一个尾随空行，内部内容保持原样"""
    content = _LEADING_BLANK_LINE.sub("", content, count=1)
    content = _TRAILING_BLANK_LINE.sub("", content, count=1)
    return content


def count_fence_openers(text: str) -> int:
    if not isinstance(text, str):
        return 0
    return text.count(FENCE_OPENER)


class BlockExtractor(ABC):
    """
    文件块提取器接口。
    调用方只依赖本接口，匹配策略（正则或手写扫描器）可以替换。
    """

    @abstractmethod
    def iter_edits(self, text: str) -> Iterator[FileEdit]:
        """按出现顺序惰性产生 FileEdit；不会失败，可能为空"""

    def extract(self, text: str) -> ExtractionResult:
        if not isinstance(text, str):
            return ExtractionResult()
        edits = list(self.iter_edits(text))
        unmatched = max(count_fence_openers(text) - len(edits), 0)
        return ExtractionResult(
            edits=edits,
            unmatched_fences=unmatched,
            acknowledges_no_changes=NO_CHANGES_PHRASE in text.lower(),
        )


class RegexBlockExtractor(BlockExtractor):
    """基于 FILE_BLOCK_PATTERN 的实现"""

    def __init__(self, pattern: "re.Pattern[str]" = FILE_BLOCK_PATTERN):
        self.pattern = pattern

    def iter_edits(self, text: str) -> Iterator[FileEdit]:
        if not isinstance(text, str):
            return
        for match in self.pattern.finditer(text):
            path = match.group("path").strip()
            if not path:
                continue
            yield FileEdit(path=path, content=clean_content(match.group("content")))


_default_extractor = RegexBlockExtractor()


def parse_response(text: str) -> List[FileEdit]:
    """解析响应文本，返回有序的 FileEdit 列表（可能为空）"""
    return list(_default_extractor.iter_edits(text))


def extract(text: str) -> ExtractionResult:
    return _default_extractor.extract(text)
