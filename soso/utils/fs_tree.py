"""目录树工具 - 复制 / 统计 / 删除

全部以显式栈遍历，避免深层目录树导致递归过深。
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path


def copy_tree(src: Path, dest: Path, skip: tuple[str, ...] = ()) -> int:
    """复制目录树，跳过名字在 skip 中的条目（任意层级），返回复制的文件数

    目录符号链接按链接本身复制，不跟随。
    异常:
        OSError: 读写失败，由调用方转换为领域异常
    """
    copied = 0
    stack: list[tuple[Path, Path]] = [(Path(src), Path(dest))]
    while stack:
        s, d = stack.pop()
        d.mkdir(parents=True, exist_ok=True)
        with os.scandir(s) as it:
            for entry in it:
                if entry.name in skip:
                    continue
                target = d / entry.name
                if entry.is_dir(follow_symlinks=False):
                    stack.append((Path(entry.path), target))
                else:
                    shutil.copy2(entry.path, target, follow_symlinks=False)
                    copied += 1
    return copied


def tree_size(root: Path) -> int:
    """目录树内全部普通文件的字节数"""
    total = 0
    stack = [Path(root)]
    while stack:
        current = stack.pop()
        with os.scandir(current) as it:
            for entry in it:
                if entry.is_dir(follow_symlinks=False):
                    stack.append(Path(entry.path))
                elif entry.is_file(follow_symlinks=False):
                    total += entry.stat(follow_symlinks=False).st_size
    return total


def remove_tree(path: Path) -> None:
    """删除目录或文件，不存在时什么也不做"""
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.exists():
        shutil.rmtree(path)
