from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from webapps.counter_store import HitCounter

router = APIRouter(default_response_class=PlainTextResponse)


def get_hit_counter(request: Request) -> HitCounter:
    """Counter dependency; built once per app from its settings."""
    counter = getattr(request.app.state, "hit_counter", None)
    if counter is None:
        counter = HitCounter.from_settings(request.app.state.settings)
        request.app.state.hit_counter = counter
    return counter


@router.get("/")
def hello_counter(counter: HitCounter = Depends(get_hit_counter)) -> str:
    """
    Greet the visitor with the number of visits so far.

    Runs in the threadpool because the Redis client and its retry sleep block.
    """
    count = counter.increment()
    return f"Hello World! I have been seen {count} times.\n"
