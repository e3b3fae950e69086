# chatedit/core/config.py
"""
配置加载与校验模块

配置来源（后者覆盖前者）：
1. 内置默认值
2. <项目根目录>/.chatedit/config.yaml
3. 环境变量 CHATEDIT_API_KEY / OPENAI_API_KEY, CHATEDIT_MODEL
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import jinja2
import yaml

from .workspace import DEFAULT_EXCLUDE_PATTERNS, DEFAULT_FILE_LIMIT

# ------------------------------
# 常量定义
# ------------------------------

STATE_DIR_NAME = ".chatedit"
CONFIG_FILE_NAME = "config.yaml"
TEMPLATES_DIR = Path(__file__).parent.parent / "templates"

DEFAULT_MODEL_NAME = "gpt-4o-mini"


class ConfigError(ValueError):
    """配置文件缺失、语法错误或字段类型不正确"""


@dataclass
class ChatEditConfig:
    api_key: Optional[str] = None
    model_name: Optional[str] = DEFAULT_MODEL_NAME
    base_url: Optional[str] = None
    max_output_tokens: int = 8192
    timeout: float = 60.0
    max_retries: int = 3
    retry_delay: float = 2.0
    file_limit: int = DEFAULT_FILE_LIMIT
    exclude_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatEditConfig":
        """从 config.yaml 的内容（已校验）创建配置"""
        config = cls()
        llm = data.get("llm") or {}
        for key in ("api_key", "model_name", "base_url", "max_output_tokens",
                    "timeout", "max_retries", "retry_delay"):
            value = llm.get(key)
            if value not in (None, ""):
                setattr(config, key, value)
        workspace = data.get("workspace") or {}
        if workspace.get("file_limit") is not None:
            config.file_limit = workspace["file_limit"]
        if workspace.get("exclude_patterns") is not None:
            config.exclude_patterns = list(workspace["exclude_patterns"])
        return config

    def missing_settings(self) -> List[str]:
        missing = []
        if not self.api_key:
            missing.append("API Key")
        if not self.model_name:
            missing.append("Model Name")
        return missing


def config_path(root: Union[str, Path] = ".") -> Path:
    return Path(root) / STATE_DIR_NAME / CONFIG_FILE_NAME


# 字段名 -> 允许的类型
_LLM_FIELDS = {
    "api_key": (str,),
    "model_name": (str,),
    "base_url": (str,),
    "max_output_tokens": (int,),
    "timeout": (int, float),
    "max_retries": (int,),
    "retry_delay": (int, float),
}
_WORKSPACE_FIELDS = {
    "file_limit": (int,),
    "exclude_patterns": (list,),
}


def validate_config_content(content: str) -> Dict[str, Any]:
    """
    校验 config.yaml 的文本内容，返回解析后的字典（空文件返回 {}）。

    Raises:
        ConfigError: YAML 语法错误、顶层不是对象或字段类型不正确。
    """
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(f"YAML syntax error: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError("config.yaml must be a YAML mapping.")

    for section, fields in (("llm", _LLM_FIELDS), ("workspace", _WORKSPACE_FIELDS)):
        if section not in data or data[section] is None:
            continue
        values = data[section]
        if not isinstance(values, dict):
            raise ConfigError(f"'{section}' must be a mapping.")
        for key, value in values.items():
            if key not in fields:
                raise ConfigError(f"Unknown key '{section}.{key}'.")
            if value is None:
                continue
            # bool 是 int 的子类，需要单独排除
            if isinstance(value, bool) or not isinstance(value, fields[key]):
                raise ConfigError(
                    f"'{section}.{key}' has invalid type {type(value).__name__}."
                )
        if section == "workspace":
            patterns = values.get("exclude_patterns") or []
            if not all(isinstance(p, str) for p in patterns):
                raise ConfigError("'workspace.exclude_patterns' must be a list of strings.")

    return data


def load_config(root: Union[str, Path] = ".", environ: Optional[Dict[str, str]] = None) -> ChatEditConfig:
    """
    加载项目配置。配置文件不存在时使用默认值；存在但无效时抛出 ConfigError。
    """
    environ = os.environ if environ is None else environ
    path = config_path(root)
    data: Dict[str, Any] = {}
    if path.exists():
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Failed to read {path}: {e}") from e
        data = validate_config_content(content)

    config = ChatEditConfig.from_dict(data)

    api_key = environ.get("CHATEDIT_API_KEY") or environ.get("OPENAI_API_KEY")
    if api_key:
        config.api_key = api_key
    model_name = environ.get("CHATEDIT_MODEL")
    if model_name:
        config.model_name = model_name
    return config


def render_default_config(project_name: str, **values) -> str:
    """渲染 config.yaml 模板，用于 `chatedit init`"""
    defaults = ChatEditConfig()
    context = {
        "project_name": project_name,
        "api_key": "",
        "model_name": defaults.model_name,
        "base_url": None,
        "max_output_tokens": defaults.max_output_tokens,
        "timeout": defaults.timeout,
        "max_retries": defaults.max_retries,
        "file_limit": defaults.file_limit,
        "exclude_patterns": defaults.exclude_patterns,
    }
    context.update({k: v for k, v in values.items() if v is not None})
    env = jinja2.Environment(
        loader=jinja2.FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    return env.get_template("config.yaml.j2").render(**context)
