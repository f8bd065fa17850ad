"""Collector package for kubehubot.

Opens one Kubernetes watch stream per resource kind and routes the changes
it reports into the notification pipeline.

Submodules
----------
kinds      -- ResourceKind registry: core kinds and OpenShift extended kinds.
provider   -- ResourceWatchProvider interface and the kubernetes-asyncio
              implementation (initial list, resume, back-off, 410 recovery).
watcher    -- ResourceWatchAdapter / WatchSubscription: per-kind event
              normalization with failure isolation.
supervisor -- WatchSupervisor: owns every subscription, gates events by
              NotifyConfig and forwards them to the NotificationSink.
"""
