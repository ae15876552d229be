from pgproxyctl.naming import config_stem, derive_instance_identity


def test_identity_strips_directory_and_extension():
    assert derive_instance_identity("/etc/proxies/staging.json") == "postgres-ssm-proxy_staging"
    assert derive_instance_identity("proxy-config.json") == "postgres-ssm-proxy_proxy-config"


def test_identity_is_deterministic():
    first = derive_instance_identity("configs/cfg-a.json")
    second = derive_instance_identity("configs/cfg-a.json")

    assert first == second
    assert first.encode("utf-8") == second.encode("utf-8")


def test_identity_differs_for_different_names():
    assert derive_instance_identity("a") != derive_instance_identity("b")
    assert derive_instance_identity("cfg-a.json") != derive_instance_identity("cfg-b.json")


def test_identity_ignores_directory_for_same_file_name():
    assert derive_instance_identity("one/prod.json") == derive_instance_identity("two/prod.json")


def test_identity_sanitizes_unsafe_characters_without_collisions():
    spaced = derive_instance_identity("my config.json")
    underscored = derive_instance_identity("my_config.json")

    assert spaced.startswith("postgres-ssm-proxy_my-config-")
    assert " " not in spaced
    assert spaced != underscored


def test_identity_is_total_for_odd_inputs():
    assert derive_instance_identity(".json").startswith("postgres-ssm-proxy_")
    assert derive_instance_identity("/").startswith("postgres-ssm-proxy_default-")


def test_config_stem_only_removes_last_extension():
    assert config_stem("cfg.prod.json") == "cfg.prod"
    assert config_stem("C:\\proxies\\win.json") == "win"
