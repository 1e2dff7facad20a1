from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class TaskStatus(BaseModel):
    """Status of a single connector task"""
    id: int = Field(..., description="Task identifier")
    state: str = Field(..., description="Task state (RUNNING, FAILED, PAUSED, ...)")
    worker_id: Optional[str] = Field(None, description="Worker running the task")
    trace: Optional[str] = Field(None, description="Failure trace if the task failed")


class ConnectorStatus(BaseModel):
    """Status of the connector under test as reported by Kafka Connect"""
    name: str = Field(..., description="Connector name")
    state: str = Field(..., description="Connector state")
    worker_id: Optional[str] = Field(None, description="Worker running the connector")
    tasks: List[TaskStatus] = Field(default_factory=list, description="Task statuses")

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "ConnectorStatus":
        """Build from a `GET /connectors/{name}/status` payload"""
        connector = data.get("connector", {})
        return cls(
            name=data.get("name", ""),
            state=connector.get("state", "UNASSIGNED"),
            worker_id=connector.get("worker_id"),
            tasks=[TaskStatus(**task) for task in data.get("tasks", [])]
        )

    @property
    def running(self) -> bool:
        """Connector and all of its tasks are RUNNING"""
        return self.state == "RUNNING" and all(task.state == "RUNNING" for task in self.tasks)
