"""结果日志模块

每条探测结果以一行 JSON 追加写入，只追加不修改。
"""

import asyncio
import json
import os
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

from ..models.observation import Observation
from ..utils.exceptions import ResultLogError
from ..utils.log_manager import get_logger

DISABLED_FORMAT = 'none'


class ResultLog:
    """追加式探测结果日志（JSON Lines）"""

    def __init__(self, path: str, output_format: str = 'jsonl'):
        """初始化结果日志

        Args:
            path: 日志文件路径
            output_format: json / jsonl 写入同一种行格式，none 表示禁用
        """
        self.path = Path(path)
        self.output_format = output_format
        self.logger = get_logger('result_log')

    @property
    def enabled(self) -> bool:
        return self.output_format != DISABLED_FORMAT

    async def append(self, observations: Iterable[Observation]) -> None:
        """追加一批探测结果

        Raises:
            ResultLogError: 写入失败
        """
        observations = list(observations)
        if not self.enabled or not observations:
            return
        await asyncio.to_thread(self.append_sync, observations)

    async def query(self, since: Optional[datetime] = None,
                    until: Optional[datetime] = None) -> List[Observation]:
        """按时间范围读取探测结果

        Args:
            since: 起始时间（含），None 表示不限
            until: 结束时间（含），None 表示不限

        Returns:
            按文件顺序排列的探测结果
        """
        if not self.enabled:
            return []
        return await asyncio.to_thread(self.query_sync, since, until)

    def append_sync(self, observations: List[Observation]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'a', encoding='utf-8') as f:
                for observation in observations:
                    f.write(json.dumps(observation.to_dict(), ensure_ascii=False))
                    f.write('\n')
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            self.logger.error(f"写入结果日志失败 {self.path}: {e}")
            raise ResultLogError(f"写入结果日志失败: {e}", log_path=str(self.path), cause=e)

        self.logger.debug(f"已写入 {len(observations)} 条结果到 {self.path}")

    def query_sync(self, since: Optional[datetime] = None,
                   until: Optional[datetime] = None) -> List[Observation]:
        results: List[Observation] = []

        try:
            f = open(self.path, 'r', encoding='utf-8', errors='replace')
        except FileNotFoundError:
            return results
        except OSError as e:
            raise ResultLogError(f"读取结果日志失败: {e}", log_path=str(self.path), cause=e)

        with f:
            for lineno, line in enumerate(f, start=1):
                text = line.strip()
                if not text:
                    continue

                try:
                    observation = Observation.from_dict(json.loads(text))
                except ValueError as e:
                    # 末尾无换行的坏行是写入中断留下的截断记录
                    if not line.endswith('\n'):
                        self.logger.debug(f"结果日志第 {lineno} 行被截断，停止读取")
                        break
                    self.logger.warning(f"跳过格式错误的第 {lineno} 行: {e}")
                    continue

                if since is not None and observation.timestamp < since:
                    continue
                if until is not None and observation.timestamp > until:
                    continue
                results.append(observation)

        return results
