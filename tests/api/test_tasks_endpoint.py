import logging

import pytest
import starlette.status as codes

logger = logging.getLogger(__name__)

pytestmark = pytest.mark.asyncio


async def test_list_tasks(client):
    response = await client.get("/api/v1/tasks")
    assert response.status_code == codes.HTTP_200_OK
    names = {x["name"] for x in response.json()}
    assert {"process_packet", "run_watchdog", "run_health_check"} <= names
