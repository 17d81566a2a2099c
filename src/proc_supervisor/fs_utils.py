"""文件工具函数。

构建脚本常用的两个辅助函数：递归复制目录、列出目录下的文件。
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Iterator
from pathlib import Path

__all__ = [
    "copy_files_recursive",
    "iter_files",
]

logger = logging.getLogger(__name__)


def _walk_sorted(root: Path, rel_dir: Path) -> Iterator[Path]:
    """按名称顺序逐项遍历，遇到目录立即深入。"""
    with os.scandir(root / rel_dir) as it:
        entries = sorted(it, key=lambda entry: entry.name)
    for entry in entries:
        rel_path = rel_dir / entry.name
        if entry.is_dir(follow_symlinks=False):
            yield from _walk_sorted(root, rel_path)
        elif entry.is_file():
            yield rel_path


def iter_files(start_dir: str | os.PathLike[str]) -> Iterator[Path]:
    """递归遍历目录，按路径字典序产出文件（相对 start_dir）。

    同一目录下的文件和子目录按名称交错排序，例如 d/f.txt 先于 top.txt。
    不跟随指向目录的符号链接。

    Args:
        start_dir: 起始目录

    Yields:
        相对路径

    Raises:
        NotADirectoryError / FileNotFoundError: start_dir 不是目录
    """
    root = Path(start_dir)
    if not root.is_dir():
        if root.exists():
            raise NotADirectoryError(f"not a directory: '{root}'")
        raise FileNotFoundError(f"no such directory: '{root}'")

    yield from _walk_sorted(root, Path())


def copy_files_recursive(
    src_dir: str | os.PathLike[str],
    dst_dir: str | os.PathLike[str],
) -> int:
    """把 src_dir 下的所有文件复制到 dst_dir，保留相对目录结构。

    已存在的目标文件会被覆盖。任何复制错误直接抛出，不做部分恢复。

    Returns:
        复制的文件数
    """
    src = Path(src_dir)
    dst = Path(dst_dir)
    logger.info(f"copy_files_recursive('{src}', '{dst}')")

    n_copied = 0
    for rel_path in iter_files(src):
        dst_path = dst / rel_path
        dst_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(src / rel_path, dst_path)
        logger.debug(f"copied '{src / rel_path}' to '{dst_path}'")
        n_copied += 1

    logger.info(f"copied {n_copied} files")
    return n_copied
