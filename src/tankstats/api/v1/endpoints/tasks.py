import logging
from typing import List, Set

from fastapi import APIRouter, Query

from cq import celery_app
from schemas.task import TaskOut

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[TaskOut])
async def list_tasks(fields: Set[str] = Query(None)):
    """ Get a list of executable tasks """
    tasks = celery_app.describe_tasks()
    return [TaskOut(**task).model_dump(include=fields) for task in tasks]
