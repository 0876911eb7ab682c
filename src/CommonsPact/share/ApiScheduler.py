import asyncio
import logging
from itertools import count
from typing import Any, Coroutine, NamedTuple, Optional

logger = logging.getLogger(__name__)


class APIRequest(NamedTuple):
    """
    优先级队列中传递的请求。
    - priority: 优先级，数字越小越高。
    - count: 提交序号，同优先级按先后顺序执行。
    - coro: 需要被执行的协程对象。
    - future: 协程执行完毕后用于回传结果或异常。
    """

    priority: int
    count: int
    coro: Coroutine[Any, Any, Any]
    future: asyncio.Future


class APIScheduler:
    """
    带优先级的协程调度器。

    Bot 上有两个实例:
    - bot.api_scheduler: 所有 Discord API 调用，并发数受 Semaphore 限制；
    - bot.lifecycle_scheduler: 并发数为 1 的单消费者命令队列。反应事件与定时任务
      都把生命周期命令提交到这里，因此同一时刻只有一个命令在修改提案状态。
    """

    def __init__(self, concurrent_requests: int = 10, name: str = "api"):
        """
        :param concurrent_requests: 同时执行的最大协程数。
        :param name: 调度器名称，仅用于日志。
        """
        self.name = name
        self._queue: asyncio.PriorityQueue = asyncio.PriorityQueue()
        self._semaphore = asyncio.Semaphore(concurrent_requests)
        self._task: Optional[asyncio.Task] = None
        self._is_running = False
        self._counter = count()

    @property
    def is_running(self) -> bool:
        return self._is_running

    async def _dispatcher_loop(self):
        """主循环，从队列中拉取请求并派发给 worker。"""
        logger.info(f"调度器 '{self.name}' 主循环已启动。")
        while True:
            await self._semaphore.acquire()
            try:
                request = await self._queue.get()

                # 哨兵对象，通知循环退出
                if request.coro is None:
                    self._semaphore.release()
                    self._queue.task_done()
                    break

                asyncio.create_task(self._worker(request))
                self._queue.task_done()

            except asyncio.CancelledError:
                self._semaphore.release()
                logger.info(f"调度器 '{self.name}' 主循环被取消。")
                break
            except Exception:
                self._semaphore.release()
                logger.exception(f"调度器 '{self.name}' 主循环发生意外错误。")
                await asyncio.sleep(1)

    async def _worker(self, request: APIRequest):
        """处理单个请求的完整生命周期。"""
        try:
            result = await request.coro
            if not request.future.done():
                request.future.set_result(result)
        except Exception as e:
            logger.debug(
                f"调度器 '{self.name}' 执行协程 (优先级: {request.priority}) 时发生错误: {e}"
            )
            if not request.future.done():
                request.future.set_exception(e)
        finally:
            self._semaphore.release()

    async def submit(self, coro: Coroutine, priority: int) -> Any:
        """
        提交一个协程并等待其结果。异常会原样抛回给调用者。

        :param coro: 要执行的协程。
        :param priority: 优先级 (1=最高, 10=低)。
        """
        if not self._is_running:
            coro.close()
            raise RuntimeError(f"调度器 '{self.name}' 没有在运行")

        future = asyncio.get_running_loop().create_future()
        request = APIRequest(
            priority=priority, count=next(self._counter), coro=coro, future=future
        )
        await self._queue.put(request)
        return await future

    def start(self):
        """启动调度器后台任务。"""
        if self._is_running:
            return
        self._is_running = True
        self._task = asyncio.create_task(self._dispatcher_loop())

    async def stop(self):
        """停止调度器，等待主循环自然结束。"""
        if not self._is_running or not self._task:
            return

        logger.info(f"即将停止调度器 '{self.name}'...")
        self._is_running = False

        # 哨兵使用最低优先级，排在所有已提交的请求之后
        sentinel_future = asyncio.get_running_loop().create_future()
        sentinel = APIRequest(
            priority=1 << 30,
            count=next(self._counter),
            coro=None,  # type: ignore
            future=sentinel_future,
        )
        await self._queue.put(sentinel)
        await self._task
        logger.info(f"调度器 '{self.name}' 已停止")
