# chatedit/core/prompt.py
"""
提示词构建：读取目标文件内容并渲染 edit_prompt.md.j2 模板。
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

import jinja2

from .workspace import Workspace

TEMPLATES_DIR = Path(__file__).parent.parent / "templates"
DEFAULT_TEMPLATE = "edit_prompt.md.j2"


@dataclass
class FileContext:
    path: str
    content: str


def parse_target_files(target_files: Optional[str]) -> List[str]:
    """把逗号分隔的路径列表拆分、去空白、去掉空项"""
    if not target_files:
        return []
    return [p.strip() for p in target_files.split(",") if p.strip()]


class PromptBuilder:
    """
    根据工作区内容和用户指令生成发送给 LLM 的提示词。
    """

    def __init__(self, workspace: Workspace, template: str = DEFAULT_TEMPLATE,
                 templates_dir: Path = TEMPLATES_DIR):
        self.workspace = workspace
        self.template_name = template
        self.env = self._create_jinja_env(templates_dir)

    def _create_jinja_env(self, templates_dir: Path) -> jinja2.Environment:
        loader = jinja2.FileSystemLoader(str(templates_dir))
        env = jinja2.Environment(
            loader=loader,
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        return env

    def read_file_context(self, paths: List[str]) -> List[FileContext]:
        """
        读取目标文件内容。读不到的文件不会中断请求，
        而是以一行说明代替文件内容放进提示词。
        """
        contexts = []
        for path in paths:
            try:
                content = self.workspace.read_text(path)
            except (OSError, ValueError) as e:
                reason = e.strerror if isinstance(e, OSError) and e.strerror else str(e)
                content = f"// File not found or could not be read: {reason}"
            contexts.append(FileContext(path=path, content=content))
        return contexts

    def render(self, instruction: str, files: Optional[List[FileContext]] = None) -> str:
        try:
            template = self.env.get_template(self.template_name)
        except jinja2.TemplateNotFound as e:
            raise FileNotFoundError(f"Template not found: {e.name}")
        return template.render(instruction=instruction, files=files or []).strip()

    def build(self, instruction: str, target_files: Union[str, Sequence[str], None] = None) -> str:
        """读取 target_files（逗号分隔的字符串或路径列表）并渲染完整提示词"""
        if target_files is None or isinstance(target_files, str):
            paths = parse_target_files(target_files)
        else:
            paths = list(target_files)
        return self.render(instruction, self.read_file_context(paths))
