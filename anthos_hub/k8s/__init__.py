"""Kubernetes cluster access."""

from anthos_hub.k8s.artifacts import ClusterArtifactStore
from anthos_hub.k8s.clients import KubeAuth, KubernetesClientSet, get_cluster_uuid, load_clients
from anthos_hub.k8s.reconciler import ManifestReconciler, ObjectKind, ReconcileAction

__all__ = [
    "ClusterArtifactStore",
    "KubeAuth",
    "KubernetesClientSet",
    "get_cluster_uuid",
    "load_clients",
    "ManifestReconciler",
    "ObjectKind",
    "ReconcileAction",
]
