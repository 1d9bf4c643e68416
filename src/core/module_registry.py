"""Process-wide registry of feature modules.

Startup registers each module once; ``init_db`` and ``start_scheduler`` then
collect tables, indexes and cron jobs from whatever is registered.
"""

from src.core.module import Module, ScheduledJob


_modules: dict[str, Module] = {}


def register_module(module: Module) -> None:
    """Add ``module`` to the registry.

    Raises:
        ValueError: If a module with the same name is already registered
    """
    if module.name in _modules:
        msg = f"Module '{module.name}' is already registered"
        raise ValueError(msg)
    _modules[module.name] = module


def unregister_module(name: str) -> None:
    _modules.pop(name, None)


def get_module(name: str) -> Module | None:
    return _modules.get(name)


def get_all_table_schemas() -> dict[str, str]:
    """Map table name to CREATE TABLE statement across all modules.

    Raises:
        ValueError: If two modules declare the same table
    """
    tables: dict[str, str] = {}
    for module in _modules.values():
        for table, ddl in module.get_table_schemas().items():
            if table in tables:
                msg = f"Table '{table}' from module '{module.name}' is already declared"
                raise ValueError(msg)
            tables[table] = ddl
    return tables


def get_all_indexes() -> list[str]:
    return [ddl for module in _modules.values() for ddl in module.get_indexes()]


def get_all_scheduled_jobs() -> list[ScheduledJob]:
    return [job for module in _modules.values() for job in module.get_scheduled_jobs()]
