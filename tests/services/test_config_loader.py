import json

import pytest

from pgproxyctl.errors import ConfigurationInvalid, ConfigurationNotFound
from pgproxyctl.services.config_loader import (
    START_FIELDS,
    STATUS_FIELDS,
    TEST_FIELDS,
    ConfigLoader,
)


def _document(**overrides):
    document = {
        "bastion": {"instance_id": "i-0123456789abcdef0"},
        "rds": {"endpoint": "db.cluster.eu-central-1.rds.amazonaws.com"},
        "aws_credentials": {"access_key_id": "AKIA", "secret_access_key": "secret"},
        "database": {
            "username": "app",
            "password": "pw",
            "database": "appdb",
            "connection_string": "postgresql://app:pw@localhost:1337/appdb",
        },
        "ecr": {"repository_uri": "123.dkr.ecr.eu-central-1.amazonaws.com/pg-proxy"},
    }
    document.update(overrides)
    return document


def _write(tmp_path, document, name="proxy-config.json"):
    config_file = tmp_path / name
    config_file.write_text(json.dumps(document), encoding="utf-8")
    return str(config_file)


def test_config_loader_reads_json_document_with_defaults(tmp_path):
    config = ConfigLoader().load(_write(tmp_path, _document()), required=START_FIELDS)

    assert config.instance_id == "i-0123456789abcdef0"
    assert config.region == "eu-central-1"
    assert config.local_port == 1337
    assert config.image_tag == "latest"
    assert config.bastion_ready_timeout == 600.0
    assert config.image_reference == "123.dkr.ecr.eu-central-1.amazonaws.com/pg-proxy:latest"
    assert config.registry == "123.dkr.ecr.eu-central-1.amazonaws.com"


def test_config_loader_reads_yaml_and_overrides(tmp_path):
    config_file = tmp_path / "proxy.yml"
    config_file.write_text(
        "aws_region: us-east-1\n"
        "local_port: '5433'\n"
        "bastion_ready_timeout: 120\n"
        "ecr:\n  repository_uri: registry/pg\n  tag: v2\n",
        encoding="utf-8",
    )

    config = ConfigLoader().load(str(config_file))

    assert config.region == "us-east-1"
    assert config.local_port == 5433
    assert config.bastion_ready_timeout == 120.0
    assert config.image_reference == "registry/pg:v2"


def test_config_loader_ignores_unknown_keys(tmp_path):
    document = _document(ssm={"document": "AWS-StartPortForwardingSessionToRemoteHost"})

    config = ConfigLoader().load(_write(tmp_path, document), required=START_FIELDS)

    assert config.db_name == "appdb"


def test_config_loader_missing_file(tmp_path):
    with pytest.raises(ConfigurationNotFound, match="Configuration file not found"):
        ConfigLoader().load(str(tmp_path / "missing.json"))


def test_config_loader_reports_missing_required_fields(tmp_path):
    document = _document()
    del document["bastion"]
    document["database"]["password"] = ""

    with pytest.raises(ConfigurationInvalid) as exc_info:
        ConfigLoader().load(_write(tmp_path, document), required=START_FIELDS)

    message = str(exc_info.value)
    assert "bastion.instance_id" in message
    assert "database.password" in message


def test_config_loader_requirements_depend_on_command(tmp_path):
    path = _write(tmp_path, {"database": {"connection_string": "postgresql://x"}})

    config = ConfigLoader().load(path, required=STATUS_FIELDS)
    assert config.connection_string == "postgresql://x"

    with pytest.raises(ConfigurationInvalid, match="database.username"):
        ConfigLoader().load(path, required=TEST_FIELDS)


@pytest.mark.parametrize(
    "document, reason",
    [
        (["not", "a", "mapping"], "root must be a mapping"),
        ({"database": "app"}, "'database' must be a mapping"),
        ({"local_port": 70000}, "between 1 and 65535"),
        ({"local_port": "abc"}, "must be an integer"),
        ({"bastion_ready_timeout": 0}, "must be positive"),
        ({"bastion": {"instance_id": ["i-1"]}}, "must be a string"),
    ],
)
def test_config_loader_rejects_invalid_documents(tmp_path, document, reason):
    with pytest.raises(ConfigurationInvalid, match=reason):
        ConfigLoader().load(_write(tmp_path, document))


def test_config_loader_rejects_unparseable_file(tmp_path):
    config_file = tmp_path / "broken.json"
    config_file.write_text('{"bastion": {', encoding="utf-8")

    with pytest.raises(ConfigurationInvalid, match="could not be parsed"):
        ConfigLoader().load(str(config_file))
