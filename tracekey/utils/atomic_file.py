"""原子文件写入

临时文件写入同目录 -> flush + fsync -> os.replace 覆盖目标 -> 尽力同步目录。
rename 成功之前目标文件不会被改动。
"""

import os
import tempfile
from pathlib import Path
from typing import Union

from .log_manager import get_logger

logger = get_logger('atomic_file')


def fsync_directory(directory: Union[str, Path]) -> None:
    """尽力同步目录项，平台不支持时忽略"""
    try:
        fd = os.open(str(directory), os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError as e:
        logger.debug(f"目录同步失败 {directory}: {e}")
    finally:
        os.close(fd)


def atomic_write_text(path: Union[str, Path], data: str, encoding: str = 'utf-8') -> None:
    """
    以原子方式写入文本文件

    Args:
        path: 目标文件路径
        data: 文件内容
        encoding: 文本编码

    Raises:
        OSError: 写入或重命名失败，此时目标文件保持原样
    """
    target = Path(path)
    directory = target.parent
    directory.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(
        prefix=f'.{target.name}.', suffix='.tmp', dir=str(directory))
    try:
        with os.fdopen(fd, 'w', encoding=encoding) as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, target)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise

    fsync_directory(directory)
