"""
Pytest configuration for integration tests

Starts a single node MongoDB replica set in Docker for the session and
points the harness settings at it through the environment.
"""
import pytest
import docker
import time
import logging
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from mongo_cdc_harness.config import configure_logging

configure_logging()
logger = logging.getLogger(__name__)

TEST_REPLICA_SET = "rs-harness"
TEST_PORT = 27150
TEST_CONTAINER = "mongo-cdc-harness-it"
MONGODB_IMAGE = "mongo:7.0"


def wait_for_condition(condition_fn, timeout=60, interval=2, description="condition"):
    """Wait for a condition to be true."""
    start = time.time()
    while time.time() - start < timeout:
        try:
            if condition_fn():
                return True
        except Exception as e:
            logger.debug(f"Waiting for {description}: {e}")
        time.sleep(interval)
    raise TimeoutError(f"Timeout waiting for {description} after {timeout}s")


def remove_test_container(docker_client: docker.DockerClient):
    try:
        container = docker_client.containers.get(TEST_CONTAINER)
        logger.info(f"Removing container: {container.name}")
        container.remove(force=True)
    except docker.errors.NotFound:
        pass


@pytest.fixture(scope="session")
def docker_client():
    """Get Docker client, skipping the suite when no daemon is reachable."""
    try:
        client = docker.from_env()
        client.ping()
    except docker.errors.DockerException as e:
        pytest.skip(f"Docker is not available: {e}")
    yield client
    client.close()


@pytest.fixture(scope="session", autouse=True)
def mongo_replica_set(docker_client):
    """Single node replica set reachable at localhost:TEST_PORT."""
    remove_test_container(docker_client)

    container = docker_client.containers.run(
        image=MONGODB_IMAGE,
        name=TEST_CONTAINER,
        command=f"mongod --replSet {TEST_REPLICA_SET} --bind_ip_all --port {TEST_PORT}",
        ports={f"{TEST_PORT}/tcp": TEST_PORT},
        detach=True,
        remove=False
    )
    logger.info(f"Started container {container.name} on port {TEST_PORT}")

    client = MongoClient(f"mongodb://localhost:{TEST_PORT}/?directConnection=true", serverSelectionTimeoutMS=2000)
    try:
        wait_for_condition(lambda: client.admin.command("ping"), description="mongod to accept connections")
        client.admin.command("replSetInitiate", {
            "_id": TEST_REPLICA_SET,
            "members": [{"_id": 0, "host": f"localhost:{TEST_PORT}"}]
        })
        wait_for_condition(
            lambda: client.admin.command("hello").get("isWritablePrimary"),
            description="primary election"
        )
    except PyMongoError:
        container.remove(force=True)
        raise
    finally:
        client.close()

    with pytest.MonkeyPatch.context() as mp:
        mp.setenv("HARNESS_MONGODB_HOSTS", f"localhost:{TEST_PORT}")
        mp.setenv("HARNESS_REPLICA_SET_NAME", TEST_REPLICA_SET)
        mp.setenv("HARNESS_CONNECT_BACKOFF_INITIAL_DELAY_MS", "200")
        yield f"{TEST_REPLICA_SET}/localhost:{TEST_PORT}"

    logger.info("Test session complete. Cleaning up...")
    remove_test_container(docker_client)
