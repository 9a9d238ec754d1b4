"""Link management commands for schedule4d CLI."""

from cyclopts import App

from schedule4d.config import get_config
from schedule4d.links import LinkStore
from schedule4d.models import EntityInfo
from schedule4d.store import Store

link_app = App(name="link", help="Manage links between tasks and model entities")


def load_link_store(store: Store, project: str) -> LinkStore:
    """Load the saved links and rules of a project."""
    links = store.get_task_links(project)
    if not links.ok:
        raise ValueError(f"Failed to load task links: {links.error}")
    rules = store.get_link_rules(project)
    if not rules.ok:
        raise ValueError(f"Failed to load link rules: {rules.error}")

    link_store = LinkStore()
    link_store.load_links(links.data or [])
    link_store.load_rules(rules.data or [])
    return link_store


def save_links(store: Store, project: str, link_store: LinkStore) -> None:
    """Save every link of a project against the configured model."""
    model_id = get_config().get("model.id")
    links = [link for task_links in link_store.all_links().values() for link in task_links]
    result = store.save_task_links(project, model_id, links)
    if not result.ok:
        raise ValueError(f"Failed to save task links: {result.error}")


@link_app.command
def add(
    project: str,
    task_id: str,
    *express_ids: int,
    type: str = "Unknown",
    name: str | None = None,
    global_id: str | None = None,
) -> None:
    """Link model entities to a task."""
    from schedule4d.cli import get_store

    store = get_store()
    link_store = load_link_store(store, project)

    created = 0
    for express_id in express_ids:
        entity = EntityInfo(
            global_id=global_id or f"global_{express_id}",
            express_id=express_id,
            type=type,
            name=name,
        )
        if link_store.link(task_id, entity):
            created += 1

    save_links(store, project, link_store)
    print(f"Added {created} link(s) to task {task_id}")


@link_app.command
def remove(project: str, task_id: str, *express_ids: int) -> None:
    """Unlink model entities from a task."""
    from schedule4d.cli import get_store

    store = get_store()
    link_store = load_link_store(store, project)
    for express_id in express_ids:
        link_store.unlink(task_id, express_id)

    save_links(store, project, link_store)
    print(f"Removed {len(express_ids)} link(s) from task {task_id}")


@link_app.command(name="list")
def list_links(project: str, task_id: str | None = None) -> None:
    """List the links of a project, or of one task."""
    from schedule4d.cli import get_store

    link_store = load_link_store(get_store(), project)
    all_links = link_store.all_links()
    if task_id is not None:
        all_links = {task_id: all_links.get(task_id, [])}

    links = [link for task_links in all_links.values() for link in task_links]
    if not links:
        print(f"No links found in project {project}")
        return

    print(f"Links in project {project}:\n")
    for link in links:
        name = f" {link.entity_name}" if link.entity_name else ""
        print(
            f"  {link.task_id} --[{link.link_type.value}]--> "
            f"{link.entity_express_id} {link.entity_type}{name} ({link.entity_global_id})"
        )
