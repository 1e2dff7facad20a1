import re
from typing import List, Optional, Pattern, Tuple
from pydantic import BaseModel, ConfigDict, Field, model_validator

from mongo_cdc_harness.config import Settings

BUILT_IN_DATABASES = ("admin", "config", "local")


def _split_patterns(value: str) -> Tuple[str, ...]:
    """Split a comma separated list of regular expressions"""
    if not value:
        return ()
    return tuple(part.strip() for part in value.split(",") if part.strip())


def _compile(patterns: Tuple[str, ...]) -> List[Pattern]:
    return [re.compile(pattern) for pattern in patterns]


def _matches_any(patterns: List[Pattern], value: str) -> bool:
    return any(pattern.fullmatch(value) for pattern in patterns)


class Filters(BaseModel):
    """Database and collection filters applied to a primary handle"""
    model_config = ConfigDict(frozen=True)

    database_include_list: Tuple[str, ...] = Field(default=(), description="Databases to include (regex)")
    database_exclude_list: Tuple[str, ...] = Field(default=(), description="Databases to exclude (regex)")
    collection_include_list: Tuple[str, ...] = Field(
        default=(),
        description="Collections to include as 'db.collection' (regex)"
    )
    collection_exclude_list: Tuple[str, ...] = Field(
        default=(),
        description="Collections to exclude as 'db.collection' (regex)"
    )

    @model_validator(mode="after")
    def _check_exclusive(self) -> "Filters":
        if self.database_include_list and self.database_exclude_list:
            raise ValueError("Database include and exclude lists are mutually exclusive")
        if self.collection_include_list and self.collection_exclude_list:
            raise ValueError("Collection include and exclude lists are mutually exclusive")
        for pattern in self.database_include_list + self.database_exclude_list + \
                self.collection_include_list + self.collection_exclude_list:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"Invalid filter pattern '{pattern}': {e}")
        return self

    @classmethod
    def from_settings(cls, config: Settings) -> "Filters":
        """Build filters from the comma separated lists in the settings"""
        return cls(
            database_include_list=_split_patterns(config.database_include_list),
            database_exclude_list=_split_patterns(config.database_exclude_list),
            collection_include_list=_split_patterns(config.collection_include_list),
            collection_exclude_list=_split_patterns(config.collection_exclude_list),
        )

    def database_filter(self, database_name: str) -> bool:
        """Whether a database should be visible"""
        if database_name in BUILT_IN_DATABASES:
            return False
        if self.database_include_list:
            return _matches_any(_compile(self.database_include_list), database_name)
        if self.database_exclude_list:
            return not _matches_any(_compile(self.database_exclude_list), database_name)
        return True

    def collection_filter(self, database_name: str, collection_name: str) -> bool:
        """Whether a collection should be visible"""
        if not self.database_filter(database_name):
            return False
        if collection_name.startswith("system."):
            return False

        full_name = f"{database_name}.{collection_name}"
        if self.collection_include_list:
            return _matches_any(_compile(self.collection_include_list), full_name)
        if self.collection_exclude_list:
            return not _matches_any(_compile(self.collection_exclude_list), full_name)
        return True

    def to_connector_properties(self) -> dict:
        """Render the filters as connector configuration properties"""
        properties = {}
        if self.database_include_list:
            properties["database.include.list"] = ",".join(self.database_include_list)
        if self.database_exclude_list:
            properties["database.exclude.list"] = ",".join(self.database_exclude_list)
        if self.collection_include_list:
            properties["collection.include.list"] = ",".join(self.collection_include_list)
        if self.collection_exclude_list:
            properties["collection.exclude.list"] = ",".join(self.collection_exclude_list)
        return properties


def describe(filters: Optional[Filters]) -> str:
    """Short human readable form for log lines"""
    if filters is None:
        return "no filters"
    parts = [f"{key}={value}" for key, value in filters.to_connector_properties().items()]
    return ", ".join(parts) or "no filters"
