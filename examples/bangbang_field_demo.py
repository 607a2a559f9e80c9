#!/usr/bin/env python
"""
examples/bangbang_field_demo.py - 半场 bang-bang RRT* 规划演示

在 16 x 8 的半场中从左下角静止出发，绕过两堵墙到达右上角静止。

输出：
  - 终端日志（最优路径改进、阶段耗时）
  - examples/output/bangbang_<timestamp>/ 目录下
    - config.json  规划参数
    - arena.json   场地
    - path.json    最优路径
    - planner.png  树与路径

运行：
    python examples/bangbang_field_demo.py
    python examples/bangbang_field_demo.py --seed 7 --steps 2000 --bidirectional
    python examples/bangbang_field_demo.py --config my_config.json --no-viz
"""

import argparse
import logging
import time
from datetime import datetime
from pathlib import Path

from kinoplanner import (
    BangBangRRTStar,
    FieldArena,
    LoggingEventSink,
    PlannerConfig,
    half_field_arena,
    run_planner,
)
from kinoplanner.visualize import HAS_MATPLOTLIB, plot_planner

# ── 日志配置 ──────────────────────────────────────────────
LOG_FMT = "[%(asctime)s] %(levelname)-7s %(name)s: %(message)s"
logging.basicConfig(level=logging.INFO, format=LOG_FMT, datefmt="%H:%M:%S")
logger = logging.getLogger("bangbang_field_demo")


def main():
    parser = argparse.ArgumentParser(
        description="半场 bang-bang RRT* 规划演示")
    parser.add_argument("--seed", type=int, default=None,
                        help="随机种子 (默认: 随机)")
    parser.add_argument("--steps", type=int, default=1000,
                        help="step 次数 (默认: 1000)")
    parser.add_argument("--timeout", type=float, default=None,
                        help="墙钟时间上限 (s)")
    parser.add_argument("--config", type=str, default=None,
                        help="加载规划参数 JSON")
    parser.add_argument("--arena-json", type=str, default=None,
                        help="加载场地 JSON (默认: 半场两堵墙)")
    parser.add_argument("--bidirectional", action="store_true",
                        help="双向生长并连接两棵树")
    parser.add_argument("--explore", action="store_true",
                        help="使用随机控制前向仿真生长")
    parser.add_argument("--events", action="store_true",
                        help="把规划事件输出到 DEBUG 日志")
    parser.add_argument("--no-viz", action="store_true",
                        help="跳过可视化")
    args = parser.parse_args()

    config = PlannerConfig.from_json(args.config) if args.config else PlannerConfig()
    if args.bidirectional:
        config.bidirectional = True
    if args.explore:
        config.growth = 'explore'
    if args.seed is not None:
        config.seed = args.seed
    elif config.seed is None:
        config.seed = int(time.time()) % 100000

    arena = FieldArena.from_json(args.arena_json) if args.arena_json else half_field_arena()

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    output_dir = Path("examples/output") / f"bangbang_{timestamp}"
    output_dir.mkdir(parents=True, exist_ok=True)

    logger.info("=" * 60)
    logger.info("  bang-bang RRT* 半场演示")
    logger.info("  随机种子: %d", config.seed)
    logger.info("  障碍物: %d, 双向: %s, 生长: %s",
                arena.n_obstacles, config.bidirectional, config.growth)
    logger.info("  输出目录: %s", output_dir)
    logger.info("=" * 60)

    config.to_json(output_dir / "config.json")
    arena.to_json(str(output_dir / "arena.json"))

    sink = LoggingEventSink() if args.events else None
    planner = BangBangRRTStar(arena, config=config, event_sink=sink)
    result = run_planner(planner, args.steps, timeout=args.timeout)

    path_json = None
    if result.success:
        path_json = result.save_path(output_dir / "path.json")

    if not args.no_viz:
        if HAS_MATPLOTLIB:
            import matplotlib.pyplot as plt
            ax = plot_planner(planner)
            png = output_dir / "planner.png"
            ax.figure.savefig(png, dpi=150, bbox_inches='tight')
            plt.close(ax.figure)
            logger.info("图片已保存到 %s", png)
        else:
            logger.warning("未安装 matplotlib，跳过可视化")

    logger.info("")
    logger.info("=" * 60)
    logger.info("  结果    : %s", "成功 ✓" if result.success else "失败 ✗")
    if result.success:
        logger.info("  路径时间 : %.3f s (首解 step %d)",
                    result.cost, result.first_solution_step)
    logger.info("  节点    : %d / %d", result.n_nodes_a, result.n_nodes_b)
    logger.info("  总耗时  : %.3f s", result.computation_time)
    if path_json:
        logger.info("  路径 JSON: %s", path_json)
    logger.info("=" * 60)


if __name__ == "__main__":
    main()
