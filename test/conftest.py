"""
conftest.py - pytest 全局配置

把 src/ 加入 sys.path，使测试无需安装即可导入 bangbang / kinoplanner；
matplotlib 使用无界面后端。
"""

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
for path in (ROOT, SRC):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

os.environ.setdefault("MPLBACKEND", "Agg")
