# 路径处理模块：提供配置文件路径
#
# 主要功能：
#   - get_config_dir()：获取跨平台配置目录
#   - get_default_config_path()：获取默认配置文件路径（可被 GF_CONFIG 覆盖）

import os
import sys
from pathlib import Path
from typing import Mapping, Optional

APP_NAME = "git-fleet"
CONFIG_FILENAME = ".gfconfig.json"
CONFIG_ENV_VAR = "GF_CONFIG"


def get_config_dir(environ: Optional[Mapping[str, str]] = None) -> Path:
    """获取配置目录（不会自动创建）"""
    env = os.environ if environ is None else environ
    if os.name == "nt":
        base = env.get("APPDATA") or env.get("LOCALAPPDATA") or str(Path.home())
    elif sys.platform == "darwin":
        base = str(Path.home() / "Library" / "Application Support")
    else:
        base = env.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / APP_NAME


def get_default_config_path(environ: Optional[Mapping[str, str]] = None) -> Path:
    """获取默认配置文件路径"""
    env = os.environ if environ is None else environ
    override = env.get(CONFIG_ENV_VAR, "").strip()
    if override:
        return Path(os.path.expanduser(override))
    return get_config_dir(env) / CONFIG_FILENAME


def expand_path(raw_path: str) -> str:
    """展开 ~ 和环境变量"""
    return os.path.expandvars(os.path.expanduser(raw_path))
