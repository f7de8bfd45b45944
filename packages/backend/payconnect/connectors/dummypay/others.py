import json
import re
from typing import TYPE_CHECKING

from pydantic import Field

from ...errors import InvalidRequest
from ...messages import FetchNextOthersRequest, FetchNextOthersResponse
from ...models import PSPOther
from ...pagination import fetch_batch
from ...state import PluginState, dump_state, load_state

if TYPE_CHECKING:
    from .plugin import Plugin

_VALID_NAME = re.compile(r"^[A-Za-z0-9_-]+$")


class OthersState(PluginState):
    last_id: str = Field(default="", alias="lastId")


def fetch_next_others(
    plugin: "Plugin", req: FetchNextOthersRequest
) -> FetchNextOthersResponse:
    client = plugin._require_client()
    if not _VALID_NAME.match(req.name or ""):
        raise InvalidRequest(f"invalid others name: {req.name!r}")
    state = load_state(OthersState, req.state)

    batch = fetch_batch(
        client.iter_pages(f"others/{req.name}.json", req.page_size),
        lambda r: PSPOther(id=str(r["id"]), other=json.dumps(r).encode()),
        req.page_size,
        is_new=lambda r: str(r["id"]) > state.last_id,
        provider=plugin.provider_name,
        entity=f"others:{req.name}",
    )
    if batch.last_record is not None:
        state.last_id = str(batch.last_record["id"])

    return FetchNextOthersResponse(
        others=batch.items, new_state=dump_state(state), has_more=batch.has_more
    )
