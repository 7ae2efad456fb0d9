"""状态存储模块

以 JSON 数组持久化每个目标最近一次成功探测的状态，
写入通过临时文件 + fsync + rename 保证原子性。
"""

import asyncio
import json
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..models.observation import LastKnownState
from ..utils.atomic_file import atomic_write_text
from ..utils.exceptions import StatePersistenceError
from ..utils.log_manager import get_logger

DEFAULT_STATE_FILE = os.path.join('state', 'last_success.json')


class StateStore:
    """LastKnownState 的持久化存储

    磁盘上的文件是唯一可信来源，load 返回的字典只在一个检查周期内使用。
    """

    def __init__(self, state_file: Optional[str] = None):
        """初始化状态存储

        Args:
            state_file: 状态文件路径，默认为 state/last_success.json
        """
        self.state_file = Path(state_file or DEFAULT_STATE_FILE)
        self.logger = get_logger('state_store')

    async def load(self) -> Dict[str, LastKnownState]:
        """加载全部状态

        Returns:
            以 url 为键的状态字典；文件不存在或损坏时返回空字典
        """
        return await asyncio.to_thread(self.load_sync)

    async def save(self, updates: Iterable[LastKnownState]) -> None:
        """合并并原子写入状态

        Args:
            updates: 需要更新的状态，同一 url 以新值为准

        Raises:
            StatePersistenceError: 写入失败，原状态文件保持不变
        """
        updates = list(updates)
        await asyncio.to_thread(self.save_sync, updates)

    def load_sync(self) -> Dict[str, LastKnownState]:
        states = self._read_states()
        if states:
            self.logger.debug(f"从 {self.state_file} 加载了 {len(states)} 条状态")
        return states

    def save_sync(self, updates: List[LastKnownState]) -> None:
        merged = self._read_states()
        for state in updates:
            merged[state.url] = state

        payload = json.dumps(
            [state.to_dict() for state in merged.values()],
            ensure_ascii=False,
            indent=2
        )

        try:
            atomic_write_text(self.state_file, payload)
        except OSError as e:
            self.logger.error(f"保存状态失败 {self.state_file}: {e}")
            raise StatePersistenceError(
                f"保存状态失败: {e}", state_file=str(self.state_file), cause=e)

        self.logger.debug(f"已保存 {len(merged)} 条状态到 {self.state_file}")

    def _read_states(self) -> Dict[str, LastKnownState]:
        """读取状态文件，缺失或损坏时视为空"""
        try:
            with open(self.state_file, 'r', encoding='utf-8') as f:
                raw = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            self.logger.error(f"读取状态文件失败，视为无历史状态: {e}")
            return {}

        if not isinstance(raw, list):
            self.logger.error(f"状态文件格式无效，视为无历史状态: {self.state_file}")
            return {}

        states: Dict[str, LastKnownState] = {}
        for item in raw:
            try:
                state = LastKnownState.from_dict(item)
            except (KeyError, TypeError, ValueError) as e:
                self.logger.warning(f"跳过无效的状态记录 {item!r}: {e}")
                continue
            states[state.url] = state

        return states
