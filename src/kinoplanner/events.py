"""
kinoplanner/events.py - 规划事件接收器

规划器在关键节点（采样、插入、连接、rewire、最优路径更新等）向可选的
event_sink 发送 PlannerEvent；不传 sink 时不产生任何开销。

- EventRecorder:     把事件保存在列表中（测试、动画回放）
- LoggingEventSink:  把事件转发到 logging
"""

import logging
from collections import Counter
from typing import Callable, Dict, List, Optional

from .models import PlannerEvent

logger = logging.getLogger(__name__)

EventSink = Callable[[PlannerEvent], None]


class EventRecorder:
    """记录全部事件

    Example:
        >>> recorder = EventRecorder()
        >>> planner = BangBangRRTStar(arena, sampler, config, event_sink=recorder)
        >>> planner.step()
        >>> recorder.counts()
        {'sample': 1, 'insert': 1}
    """

    def __init__(self, event_types: Optional[List[str]] = None) -> None:
        self.events: List[PlannerEvent] = []
        self._filter = set(event_types) if event_types else None

    def __call__(self, event: PlannerEvent) -> None:
        if self._filter is not None and event.event_type not in self._filter:
            return
        self.events.append(event)

    def of_type(self, event_type: str) -> List[PlannerEvent]:
        return [e for e in self.events if e.event_type == event_type]

    def counts(self) -> Dict[str, int]:
        return dict(Counter(e.event_type for e in self.events))

    def clear(self) -> None:
        self.events.clear()


class LoggingEventSink:
    """把事件写入 logger；最优路径更新用 INFO，其余用 DEBUG"""

    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self._log = log or logger

    def __call__(self, event: PlannerEvent) -> None:
        level = logging.INFO if event.event_type == 'best_path' else logging.DEBUG
        if not self._log.isEnabledFor(level):
            return
        state = None if event.state is None else [round(float(v), 3) for v in event.state]
        self._log.log(level, "[step %d] %s state=%s cost=%s %s",
                      event.step, event.event_type, state, event.cost, event.detail)
