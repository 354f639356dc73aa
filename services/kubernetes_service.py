"""
services/kubernetes_service.py

Responsibility: Lists cluster nodes and reads the external-IP annotation of
each one. Connection is auto-detected: explicit kubeconfig first, then the
in-cluster service account, then the default kubeconfig location.
Does NOT: parse addresses, update DNS records, or manage cluster state.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass

from exceptions import KubernetesError

logger = logging.getLogger(__name__)

DEFAULT_ANNOTATION = "k3s.io/external-ip"

_RBAC_HINT = (
    "The service account lacks the RBAC permissions this service needs. "
    "Grant a ClusterRole with:\n"
    '- apiGroups: [""]\n'
    '  resources: ["nodes"]\n'
    '  verbs: ["get", "list", "watch"]'
)


# ---------------------------------------------------------------------------
# Value object
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NodeAnnotationSet:
    """
    A node name plus the raw value of its external-IP annotation.

    Attributes:
        name: Node name, used in log messages only.
        external_ips: Raw comma-separated annotation value, or None when the
            node does not carry the annotation.
    """

    name: str
    external_ips: str | None

    @classmethod
    def from_annotations(
        cls,
        name: str,
        annotations: Mapping[str, str] | None,
        key: str = DEFAULT_ANNOTATION,
    ) -> NodeAnnotationSet:
        return cls(name=name, external_ips=(annotations or {}).get(key))


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class KubernetesService:
    """
    Reads node annotations from the Kubernetes API.

    Kubernetes API calls are blocking and are offloaded to a thread
    via asyncio.to_thread to keep the async event loop unblocked.

    Collaborators:
        - kubernetes Python client: reads CoreV1 Node resources
    """

    def __init__(
        self,
        annotation_key: str = DEFAULT_ANNOTATION,
        node_selector: str = "",
        kubeconfig_path: str = "",
    ) -> None:
        """
        Initialises the service. No connection is made until first use.

        Args:
            annotation_key: Annotation holding the node's external IPs.
            node_selector: Label selector restricting which nodes are read;
                empty means all nodes.
            kubeconfig_path: Explicit kubeconfig file. When empty, the
                in-cluster service account is tried first.
        """
        self._annotation_key = annotation_key
        self._node_selector = node_selector.strip()
        self._kubeconfig_path = kubeconfig_path.strip()
        self._api = None

    # ---------------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------------

    async def list_nodes(self) -> list[NodeAnnotationSet]:
        """
        Returns one NodeAnnotationSet per node matching the label selector.

        Raises:
            KubernetesError: If the cluster is unreachable, auth fails, or no
                credentials can be found.
        """
        try:
            return await asyncio.to_thread(self._collect_nodes)
        except KubernetesError:
            raise
        except Exception as exc:
            raise KubernetesError(f"Failed to connect to Kubernetes cluster: {exc}") from exc

    async def verify_access(self) -> None:
        """
        Lists at most one node to prove the credentials can read nodes.

        Raises:
            KubernetesError: If the call fails; a 403 includes the RBAC hint.
        """
        try:
            await asyncio.to_thread(self._list_node_page, 1)
        except KubernetesError:
            raise
        except Exception as exc:
            raise KubernetesError(f"Failed to connect to Kubernetes cluster: {exc}") from exc

    # ---------------------------------------------------------------------------
    # Internal helpers (sync — run via asyncio.to_thread)
    # ---------------------------------------------------------------------------

    def _collect_nodes(self) -> list[NodeAnnotationSet]:
        node_list = self._list_node_page(None)

        nodes = [
            NodeAnnotationSet.from_annotations(
                node.metadata.name or "",
                node.metadata.annotations,
                self._annotation_key,
            )
            for node in node_list.items
        ]
        logger.debug(
            "Kubernetes node discovery: %d node(s) (selector=%r).",
            len(nodes),
            self._node_selector,
        )
        return nodes

    def _list_node_page(self, limit: int | None):
        from kubernetes.client.exceptions import ApiException

        api = self._core_api()
        kwargs = {}
        if self._node_selector:
            kwargs["label_selector"] = self._node_selector
        if limit is not None:
            kwargs["limit"] = limit

        try:
            return api.list_node(**kwargs)
        except ApiException as exc:
            if exc.status == 403:
                raise KubernetesError(
                    f"Failed to list nodes due to insufficient permissions "
                    f"(API 403: {exc.reason}).\n{_RBAC_HINT}"
                ) from exc
            raise KubernetesError(
                f"Kubernetes API error {exc.status}: {exc.reason}"
            ) from exc

    def _core_api(self):
        """
        Returns a cached CoreV1Api, loading cluster credentials on first call.

        Raises:
            KubernetesError: If no usable credentials are found.
        """
        if self._api is not None:
            return self._api

        from kubernetes import client as k8s_client
        from kubernetes import config as k8s_config

        if self._kubeconfig_path:
            try:
                k8s_config.load_kube_config(config_file=self._kubeconfig_path)
            except Exception as exc:
                raise KubernetesError(
                    f"Could not load kubeconfig at '{self._kubeconfig_path}': {exc}"
                ) from exc
            logger.debug("Kubernetes: using kubeconfig at %s.", self._kubeconfig_path)
        else:
            try:
                k8s_config.load_incluster_config()
                logger.debug("Kubernetes: using in-cluster service account.")
            except k8s_config.ConfigException:
                # Not running in a pod; load_kube_config() honours $KUBECONFIG
                # and falls back to ~/.kube/config.
                try:
                    k8s_config.load_kube_config()
                    logger.debug("Kubernetes: using default kubeconfig.")
                except Exception as exc:
                    raise KubernetesError(
                        f"Could not load cluster credentials: no in-cluster SA and "
                        f"no usable default kubeconfig: {exc}"
                    ) from exc

        self._api = k8s_client.CoreV1Api()
        return self._api
