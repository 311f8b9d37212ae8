"""
Run blocking calls (Firestore, SMTP, payment SDK, disk) off the event loop.
"""

import asyncio
import functools
from typing import Any, Callable


async def run_sync(func: Callable, *args, **kwargs) -> Any:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))
