"""Hashing utilities for item ids and config fingerprints."""

import hashlib
import json
from typing import Dict, Any


def short_hash(value: str) -> str:
    """
    產生短 hash

    Args:
        value: 任意字串 (guid / permalink)

    Returns:
        SHA256 hash (hex, 前 16 字元)
    """
    return hashlib.sha256(value.encode('utf-8')).hexdigest()[:16]


def item_id(publisher_id: str, guid: str) -> str:
    """
    產生 content-addressed item ID

    相同 publisher 的相同 guid/permalink 永遠得到相同 ID。

    Args:
        publisher_id: Publisher ID
        guid: 來源提供的唯一 ID 或 permalink

    Returns:
        "<publisher_id>-<hash16>"
    """
    return f"{publisher_id}-{short_hash(guid)}"


def config_hash(config_dict: Dict[str, Any]) -> str:
    """
    產生 config hash

    Args:
        config_dict: 設定字典

    Returns:
        SHA256 hash (hex, 前 16 字元)
    """
    # 排除會變動的欄位 (例如 output_dir)
    stable_keys = ['publishers', 'activity', 'cache']
    stable_config = {k: config_dict.get(k) for k in stable_keys if k in config_dict}

    json_str = json.dumps(stable_config, sort_keys=True, ensure_ascii=False, default=str)
    return hashlib.sha256(json_str.encode('utf-8')).hexdigest()[:16]
