""" Initialize Celery worker """

import inspect
from typing import Any, Dict, List

from celery import Celery as Celery_
from celery import Task

from config import CeleryConfig, project
from cq.task import CustomBaseTask


class Celery(Celery_):
    @property
    def custom_tasks(self) -> Dict[str, Task]:
        """ Returns all tasks registered in the given app, excluding the celery builtins """
        return {k: v for k, v in self.tasks.items() if not k.startswith("celery.")}

    def describe_tasks(self) -> List[Dict[str, Any]]:

        tasks: List[Dict] = []
        for task_name, task in sorted(self.custom_tasks.items()):
            task_sig = inspect.signature(task.run)
            params = {k: str(v.annotation) for k, v in task_sig.parameters.items()}
            short_name = task_name.split(".")[-1]
            tasks.append(
                {"name": short_name, "qualname": task_name, "parameters": params}
            )

        return tasks


celery_app: Celery = Celery(project, task_cls=CustomBaseTask)
celery_app.config_from_object(CeleryConfig)
