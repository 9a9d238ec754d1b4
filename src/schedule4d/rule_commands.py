"""Link rule commands for schedule4d CLI."""

from pathlib import Path
from typing import Literal

import yaml
from cyclopts import App

from schedule4d.link_commands import load_link_store, save_links
from schedule4d.models import EntityInfo, LinkRule, RuleConfig, RuleType
from schedule4d.store import Store

rule_app = App(name="rule", help="Manage rules that link entities to tasks")


def _save_rules(store: Store, project: str, rules: list[LinkRule]) -> None:
    result = store.save_link_rules(project, rules)
    if not result.ok:
        raise ValueError(f"Failed to save link rules: {result.error}")


def load_entities(path: Path) -> list[EntityInfo]:
    """Load entity descriptions from a YAML list of mappings."""
    with open(path, "r") as f:
        records = yaml.safe_load(f) or []

    entities = []
    for record in records:
        express_id = int(record["express_id"])
        entities.append(
            EntityInfo(
                global_id=str(record.get("global_id") or f"global_{express_id}"),
                express_id=express_id,
                type=record.get("type") or "Unknown",
                name=record.get("name"),
            )
        )
    return entities


@rule_app.command
def add(
    project: str,
    task_id: str,
    type: Literal["type_filter", "name_pattern", "property_match"],
    types: str = "",
    pattern: str | None = None,
    property_name: str | None = None,
    property_value: str | None = None,
    inactive: bool = False,
) -> None:
    """Add a link rule to a task."""
    from schedule4d.cli import get_store

    store = get_store()
    link_store = load_link_store(store, project)

    ifc_types = [t.strip() for t in types.split(",") if t.strip()] or None
    rule = LinkRule(
        task_id=task_id,
        rule_type=RuleType(type),
        rule_config=RuleConfig(
            property_name=property_name,
            property_value=property_value,
            pattern=pattern,
            ifc_types=ifc_types,
        ),
        is_active=not inactive,
    )
    link_store.add_rule(rule)

    _save_rules(store, project, link_store.all_rules())
    print(f"Added rule {rule.id} to task {task_id}")


@rule_app.command
def remove(project: str, rule_id: str) -> None:
    """Remove a link rule."""
    from schedule4d.cli import get_store

    store = get_store()
    link_store = load_link_store(store, project)
    if not link_store.remove_rule(rule_id):
        print(f"Rule {rule_id} not found")
        return

    _save_rules(store, project, link_store.all_rules())
    print(f"Removed rule {rule_id}")


@rule_app.command(name="list")
def list_rules(project: str, task_id: str | None = None) -> None:
    """List the link rules of a project, or of one task."""
    from schedule4d.cli import get_store

    link_store = load_link_store(get_store(), project)
    rules = link_store.get_rules_for_task(task_id) if task_id is not None else link_store.all_rules()

    if not rules:
        print(f"No rules found in project {project}")
        return

    print(f"Rules in project {project}:\n")
    for rule in rules:
        marker = "●" if rule.is_active else "○"
        rule_type = rule.rule_type.value if isinstance(rule.rule_type, RuleType) else rule.rule_type
        config = ", ".join(f"{k}={v}" for k, v in rule.rule_config.to_dict().items())
        print(f"{marker} {rule.id} [{rule.task_id}] {rule_type} {config}")


@rule_app.command
def apply(project: str, task_id: str, entities_file: Path) -> None:
    """Apply a task's rules to the entities listed in a YAML file."""
    from schedule4d.cli import get_store

    store = get_store()
    link_store = load_link_store(store, project)
    created = link_store.apply_rules(task_id, load_entities(entities_file))

    save_links(store, project, link_store)
    print(f"Linked {created} entity(ies) to task {task_id}")
