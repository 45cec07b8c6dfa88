from celery import Task

from readinggroup.celery import app as readinggroup_celery_app


def get_registered_task(name: str) -> Task:
    """
    Look up a Celery task by its fully qualified name.

    The topic operations queue tasks whose modules import those same
    operations, so they fetch the task from the registry at call time rather
    than importing it. Unlike ``app.send_task`` this returns the task object
    itself, so settings such as ``task_always_eager`` are honoured.

    Args:
        name (str): Fully qualified task name, for example
            "readinggroup.tasks.votes.record_member_upvote".

    Returns:
        Task: The registered Celery task object.

    Raises:
        RuntimeError: If the task name is not found in the registry.
    """
    try:
        return readinggroup_celery_app.tasks[name]
    except KeyError as err:
        raise RuntimeError(f"Task {name} is not registered. Did you typo it?") from err
