"""
File-based run output

每次 run 的結果寫在 <output_dir>/<run_id>/ 底下，只作為輸出，
baseline 計算從不讀取這些檔案。
"""

import json
from typing import Dict, List
from pathlib import Path
import logging

from region_pulse.models import ActivityWindow, NormalizedItem, PublisherActivity, RunMetadata, TrendingResult

logger = logging.getLogger(__name__)


class FileStore:
    """檔案輸出後端"""

    def __init__(self, base_dir: str = "out"):
        """
        初始化 FileStore

        Args:
            base_dir: 基礎目錄
        """
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"FileStore initialized at {self.base_dir}")

    def run_dir(self, run_id: str) -> Path:
        path = self.base_dir / run_id
        path.mkdir(parents=True, exist_ok=True)
        return path

    def save_run(self, run_meta: RunMetadata) -> Path:
        """寫入 run metadata"""
        file_path = self.run_dir(run_meta.run_id) / "run.json"

        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(run_meta.model_dump(mode='json'), f, indent=2, ensure_ascii=False)

        logger.info(f"Written run metadata: {file_path}")
        return file_path

    def save_items(self, run_id: str, items: List[NormalizedItem]) -> Path:
        """寫入 items (JSONL格式)"""
        file_path = self.run_dir(run_id) / "items.jsonl"

        with open(file_path, 'w', encoding='utf-8') as f:
            for item in items:
                data = item.model_dump(mode='json')
                data['region'] = item.region
                f.write(json.dumps(data, ensure_ascii=False) + '\n')

        logger.info(f"Written {len(items)} items: {file_path}")
        return file_path

    def save_activity(self, run_id: str, activity: Dict[str, ActivityWindow]) -> Path:
        """寫入各 region 活動度 (JSON格式)"""
        file_path = self.run_dir(run_id) / "activity.json"

        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(
                {region: window.model_dump() for region, window in activity.items()},
                f, indent=2, ensure_ascii=False
            )

        logger.info(f"Written activity for {len(activity)} regions: {file_path}")
        return file_path

    def save_publisher_activity(self, run_id: str, activity: Dict[str, PublisherActivity]) -> Path:
        """寫入各來源活動度 (JSON格式)"""
        file_path = self.run_dir(run_id) / "publisher_activity.json"

        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(
                {publisher_id: profile.model_dump() for publisher_id, profile in activity.items()},
                f, indent=2, ensure_ascii=False
            )

        logger.info(f"Written activity for {len(activity)} publishers: {file_path}")
        return file_path

    def save_trending(self, run_id: str, trending: TrendingResult) -> Path:
        """寫入 trending keywords (JSON格式)"""
        file_path = self.run_dir(run_id) / "trending.json"

        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(trending.model_dump(), f, indent=2, ensure_ascii=False)

        logger.info(f"Written {len(trending.keywords)} trending keywords: {file_path}")
        return file_path

    def read_items(self, run_id: str) -> List[NormalizedItem]:
        """讀取 items"""
        file_path = self.base_dir / run_id / "items.jsonl"

        if not file_path.exists():
            return []

        items = []
        with open(file_path, 'r', encoding='utf-8') as f:
            for line in f:
                if not line.strip():
                    continue
                item_data = json.loads(line)
                item_data.pop('region', None)
                items.append(NormalizedItem(**item_data))

        return items
