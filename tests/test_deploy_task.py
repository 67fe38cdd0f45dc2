"""Unit tests for DeployTask and GlobalDeployTask."""

from unittest.mock import MagicMock, Mock
import pytest
import yaml

from conftest import stub_kubectl
from kubeship.deploy_task import DeployTask, GlobalDeployTask, parse_selector
from kubeship.errors import ConfigurationError, FatalDeploymentError, InvalidManifestError


def write_manifests(directory, *documents):
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / "resources.yaml"
    path.write_text(yaml.safe_dump_all(documents))
    return directory


def resource(kind, name, namespace=None, labels=None, api_version="v1"):
    metadata = {"name": name}
    if namespace:
        metadata["namespace"] = namespace
    if labels:
        metadata["labels"] = labels
    return {"apiVersion": api_version, "kind": kind, "metadata": metadata}


@pytest.fixture
def cluster(api_resources, api_resources_namespaced, api_versions):
    return stub_kubectl(
        {
            ("api-resources", "--namespaced=false"): api_resources,
            ("api-resources", "--namespaced=true"): api_resources_namespaced,
            "api-versions": api_versions,
        }
    )


@pytest.fixture
def applier():
    return MagicMock()


class TestDeployTaskScopeGuard:
    """Test cases for the namespaced entry point's global restriction."""

    def test_allow_globals_rejected(self):
        """Test that asking for global permission fails before any cluster call."""
        kubectl = Mock()

        with pytest.raises(ConfigurationError, match="Use GlobalDeployTask"):
            DeployTask(
                namespace="ns",
                context="ctx",
                filenames=["manifests"],
                kubectl=kubectl,
                allow_globals=True,
            )

        assert kubectl.run.call_count == 0
        assert kubectl.method_calls == []

    def test_allow_globals_false_accepted(self, cluster, applier):
        """Test that an explicit False is fine."""
        task = DeployTask(
            namespace="ns", context="ctx", filenames=["x"], kubectl=cluster, applier=applier,
            allow_globals=False,
        )

        assert task.allow_globals is False
        assert cluster.run.call_count == 0

    def test_prune_whitelist_is_namespaced(self, cluster, applier):
        """Test that the namespaced task only ever asks for namespaced kinds."""
        task = DeployTask(namespace="ns", context="ctx", filenames=["x"], kubectl=cluster, applier=applier)

        whitelist = task.prune_whitelist()

        assert "apps/v1/Deployment" in whitelist
        assert "scheduling.k8s.io/v1beta1/PriorityClass" not in whitelist
        calls = [c[0] for c in cluster.run.call_args_list]
        assert ("api-resources", "--namespaced=false") not in calls

    def test_global_task_is_separate_type(self):
        """Test that the entry points do not share a class hierarchy."""
        assert not issubclass(DeployTask, GlobalDeployTask)
        assert not issubclass(GlobalDeployTask, DeployTask)


class TestDeployTaskRun:
    """Test cases for running a namespaced deploy."""

    def test_successful_deploy(self, tmp_path, cluster, applier):
        """Test that manifests are validated and applied with the namespaced whitelist."""
        manifests = write_manifests(
            tmp_path / "manifests",
            resource("ConfigMap", "settings", namespace="ns"),
            resource("Deployment", "web", api_version="apps/v1"),
        )
        task = DeployTask(
            namespace="ns", context="ctx", filenames=[manifests], kubectl=cluster, applier=applier
        )

        applied = task.run()

        assert [m.id for m in applied] == ["ConfigMap/settings", "Deployment/web"]
        applier.apply.assert_called_once()
        args, kwargs = applier.apply.call_args
        assert args[0] == [manifests / "resources.yaml"]
        assert kwargs["namespaced"] is True
        assert "core/v1/ConfigMap" in kwargs["prune_whitelist"]
        assert not any("PriorityClass" in k for k in kwargs["prune_whitelist"])
        assert kwargs["prune"] is True

    def test_global_resource_rejected(self, tmp_path, cluster, applier):
        """Test that a global kind in a namespaced deploy is refused."""
        manifests = write_manifests(
            tmp_path / "manifests",
            resource("PriorityClass", "high", api_version="scheduling.k8s.io/v1beta1"),
        )
        task = DeployTask(
            namespace="ns", context="ctx", filenames=[manifests], kubectl=cluster, applier=applier
        )

        with pytest.raises(FatalDeploymentError, match="Use GlobalDeployTask"):
            task.run()
        applier.apply.assert_not_called()

    def test_other_namespace_rejected(self, tmp_path, cluster, applier):
        """Test that a resource declaring another namespace is refused."""
        manifests = write_manifests(
            tmp_path / "manifests", resource("ConfigMap", "settings", namespace="other")
        )
        task = DeployTask(
            namespace="ns", context="ctx", filenames=[manifests], kubectl=cluster, applier=applier
        )

        with pytest.raises(FatalDeploymentError, match="declares namespace 'other'"):
            task.run()

    def test_global_kinds_discovered_once(self, tmp_path, cluster, applier):
        """Test that validation reuses the memoized kind list."""
        manifests = write_manifests(
            tmp_path / "manifests",
            resource("ConfigMap", "a"),
            resource("ConfigMap", "b"),
            resource("Secret", "c"),
        )
        task = DeployTask(
            namespace="ns", context="ctx", filenames=[manifests], kubectl=cluster, applier=applier
        )

        task.run()
        task.task_config.global_kinds

        calls = [c[0] for c in cluster.run.call_args_list]
        assert calls.count(("api-resources", "--namespaced=false")) == 1

    def test_no_prune_skips_discovery_of_whitelist(self, tmp_path, cluster, applier):
        """Test that disabling pruning skips whitelist computation."""
        manifests = write_manifests(tmp_path / "manifests", resource("ConfigMap", "a"))
        task = DeployTask(
            namespace="ns", context="ctx", filenames=[manifests], prune=False,
            kubectl=cluster, applier=applier,
        )

        task.run()

        calls = [c[0] for c in cluster.run.call_args_list]
        assert ("api-versions",) not in calls
        assert applier.apply.call_args[1]["prune_whitelist"] == []
        assert applier.apply.call_args[1]["prune"] is False

    def test_discovery_failure_does_not_block_apply(self, tmp_path, applier):
        """Test that a failed discovery applies without pruning."""
        kubectl = stub_kubectl({"api-resources": ("", False), "api-versions": ("", False)})
        manifests = write_manifests(tmp_path / "manifests", resource("ConfigMap", "a"))
        task = DeployTask(
            namespace="ns", context="ctx", filenames=[manifests], kubectl=kubectl,
            applier=applier, logger=Mock(),
        )

        task.run()

        assert applier.apply.call_args[1]["prune_whitelist"] == []

    def test_selector_must_match_labels(self, tmp_path, cluster, applier):
        """Test that every resource must carry the selector's labels."""
        manifests = write_manifests(
            tmp_path / "manifests",
            resource("ConfigMap", "a", labels={"app": "web"}),
            resource("ConfigMap", "b", labels={"app": "api"}),
        )
        task = DeployTask(
            namespace="ns", context="ctx", filenames=[manifests], selector="app=web",
            kubectl=cluster, applier=applier,
        )

        with pytest.raises(FatalDeploymentError, match="ConfigMap/b does not match selector"):
            task.run()

    def test_missing_context(self, tmp_path, cluster, applier):
        """Test that a context is required."""
        task = DeployTask(namespace="ns", context=None, filenames=[tmp_path], kubectl=cluster, applier=applier)

        with pytest.raises(ConfigurationError, match="Context must be specified"):
            task.run()
        assert cluster.run.call_count == 0

    def test_missing_namespace(self, tmp_path, cluster, applier):
        """Test that a namespace is required."""
        task = DeployTask(namespace="", context="ctx", filenames=[tmp_path], kubectl=cluster, applier=applier)

        with pytest.raises(ConfigurationError, match="Namespace must be specified"):
            task.run()

    def test_kubectl_missing(self, tmp_path, cluster, applier):
        """Test that an unusable kubectl stops the deploy."""
        cluster.client_available.return_value = False
        task = DeployTask(namespace="ns", context="ctx", filenames=[tmp_path], kubectl=cluster, applier=applier)

        with pytest.raises(ConfigurationError, match="kubectl not found"):
            task.run()

    def test_invalid_manifest(self, tmp_path, cluster, applier):
        """Test that malformed YAML is reported."""
        directory = tmp_path / "manifests"
        directory.mkdir()
        (directory / "bad.yaml").write_text("kind: [unclosed")
        task = DeployTask(namespace="ns", context="ctx", filenames=[directory], kubectl=cluster, applier=applier)

        with pytest.raises(InvalidManifestError, match="bad.yaml"):
            task.run()

    def test_run_safely(self, tmp_path, cluster, applier):
        """Test that run_safely reports failure instead of raising."""
        logger = Mock()
        task = DeployTask(
            namespace="ns", context="ctx", filenames=[tmp_path / "missing"], kubectl=cluster,
            applier=applier, logger=logger,
        )

        assert task.run_safely() is False
        logger.error.assert_called_once()

    def test_run_safely_success(self, tmp_path, cluster, applier):
        """Test that run_safely reports success."""
        manifests = write_manifests(tmp_path / "manifests", resource("ConfigMap", "a"))
        task = DeployTask(namespace="ns", context="ctx", filenames=[manifests], kubectl=cluster, applier=applier)

        assert task.run_safely() is True


class TestGlobalDeployTask:
    """Test cases for the global entry point."""

    def test_selector_required(self, cluster):
        """Test that a global deploy needs a selector."""
        with pytest.raises(ConfigurationError, match="selector is required"):
            GlobalDeployTask(context="ctx", filenames=["x"], selector="", kubectl=cluster)
        assert cluster.run.call_count == 0

    def test_prune_whitelist_is_global(self, cluster, applier):
        """Test that the global task asks for global kinds."""
        task = GlobalDeployTask(
            context="ctx", filenames=["x"], selector="app=platform", kubectl=cluster, applier=applier
        )

        whitelist = task.prune_whitelist()

        assert "scheduling.k8s.io/v1beta1/PriorityClass" in whitelist
        assert "storage.k8s.io/v1beta1/StorageClass" in whitelist
        assert not any(k.endswith("/Node") or k.endswith("/Namespace") for k in whitelist)
        assert task.allow_globals is True

    def test_successful_global_deploy(self, tmp_path, cluster, applier):
        """Test applying global resources."""
        manifests = write_manifests(
            tmp_path / "cluster",
            resource(
                "PriorityClass", "high", labels={"app": "platform"},
                api_version="scheduling.k8s.io/v1beta1",
            ),
        )
        task = GlobalDeployTask(
            context="ctx", filenames=[manifests], selector="app=platform", kubectl=cluster, applier=applier
        )

        task.run()

        kwargs = applier.apply.call_args[1]
        assert kwargs["namespaced"] is False
        assert kwargs["selector"] == "app=platform"
        assert "storage.k8s.io/v1beta1/StorageClass" in kwargs["prune_whitelist"]
        assert task.task_config.namespace is None

    def test_namespaced_resource_rejected(self, tmp_path, cluster, applier):
        """Test that a namespaced kind in a global deploy is refused."""
        manifests = write_manifests(
            tmp_path / "cluster", resource("ConfigMap", "a", labels={"app": "platform"})
        )
        task = GlobalDeployTask(
            context="ctx", filenames=[manifests], selector="app=platform", kubectl=cluster, applier=applier
        )

        with pytest.raises(FatalDeploymentError, match="use DeployTask"):
            task.run()
        applier.apply.assert_not_called()


class TestParseSelector:
    """Test cases for parse_selector."""

    def test_parse(self):
        assert parse_selector("app=web, team=infra") == {"app": "web", "team": "infra"}

    def test_empty(self):
        assert parse_selector(None) == {}

    @pytest.mark.parametrize("selector", ["app", "app!=web", "app==web", "=web"])
    def test_invalid(self, selector):
        with pytest.raises(ConfigurationError, match="Invalid selector"):
            parse_selector(selector)
