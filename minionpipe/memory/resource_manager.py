"""
Resource detection for minionpipe.

This module detects the CPUs and memory available to a run so that the
``"auto"`` settings for the thread count and the per-thread sort memory bound
can be resolved into concrete values before the RunContext is frozen.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import psutil

logger = logging.getLogger(__name__)

CGROUP_MEMORY_LIMIT_FILES = (
    "/sys/fs/cgroup/memory/memory.limit_in_bytes",  # cgroup v1
    "/sys/fs/cgroup/memory.max",  # cgroup v2
)


class ResourceManager:
    """
    Resource manager that:
    1. Detects actual system memory from config, SLURM, PBS, cgroups, or psutil
    2. Detects CPU cores from SLURM or psutil
    3. Derives the per-thread memory bound handed to the coordinate sorter
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        sort_memory_fraction: float = 0.5,
        min_sort_memory_gb: int = 1,
        max_sort_memory_gb: int = 4,
    ):
        """
        Initialize the resource manager.

        Args:
            config: Configuration dictionary with memory settings
            sort_memory_fraction: Fraction of memory the sorter may use across all threads
            min_sort_memory_gb: Lower clamp for the per-thread sort memory
            max_sort_memory_gb: Upper clamp for the per-thread sort memory
        """
        self.config = config or {}
        self.sort_memory_fraction = sort_memory_fraction
        self.min_sort_memory_gb = min_sort_memory_gb
        self.max_sort_memory_gb = max_sort_memory_gb

        self.memory_gb = self._detect_memory()
        self.cpu_cores = self._detect_cpus()

        source = self._get_memory_source()
        logger.debug(
            f"ResourceManager: {self.cpu_cores} CPUs, {self.memory_gb:.1f}GB available ({source})"
        )

    def _get_memory_source(self) -> str:
        """Get description of memory detection source for logging."""
        if self.config.get("max_memory_gb"):
            return "config"
        if os.getenv("SLURM_MEM_PER_NODE"):
            return "SLURM"
        if os.getenv("PBS_RESC_MEM"):
            return "PBS"
        if self._get_cgroup_memory_limit():
            return "cgroup"
        return "psutil"

    def _detect_memory(self) -> float:
        """
        Detect available memory limit in GB.

        Priority:
        1. max_memory_gb configuration value
        2. SLURM_MEM_PER_NODE environment variable
        3. PBS_RESC_MEM environment variable
        4. cgroup limits (v1 and v2)
        5. psutil available memory (fallback)

        Returns:
            Memory in GB
        """
        configured = self.config.get("max_memory_gb")
        if configured:
            logger.debug(f"Using configured memory limit: {float(configured):.1f}GB")
            return float(configured)

        slurm_mem = os.getenv("SLURM_MEM_PER_NODE")
        if slurm_mem:
            try:
                # SLURM memory is in MB
                return float(slurm_mem) / 1024
            except (ValueError, TypeError):
                logger.warning(f"Invalid SLURM_MEM_PER_NODE value: {slurm_mem}")

        pbs_mem = os.getenv("PBS_RESC_MEM")
        if pbs_mem:
            try:
                pbs_mem_lower = pbs_mem.lower()
                if pbs_mem_lower.endswith("gb"):
                    return float(pbs_mem_lower.replace("gb", ""))
                if pbs_mem_lower.endswith("mb"):
                    return float(pbs_mem_lower.replace("mb", "")) / 1024
                return float(pbs_mem) / 1024  # Assume MB
            except (ValueError, TypeError):
                logger.warning(f"Invalid PBS_RESC_MEM value: {pbs_mem}")

        cgroup_limit = self._get_cgroup_memory_limit()
        if cgroup_limit:
            logger.debug(f"Using cgroup memory limit: {cgroup_limit:.1f}GB")
            return cgroup_limit

        try:
            return float(psutil.virtual_memory().available / (1024**3))
        except Exception as e:
            logger.warning(f"Could not detect memory: {e}. Using conservative 8GB")
            return 8.0

    def _get_cgroup_memory_limit(self) -> Optional[float]:
        """
        Get memory limit from cgroup (containers/HPC).

        Returns:
            Memory limit in GB or None if not found
        """
        for path in CGROUP_MEMORY_LIMIT_FILES:
            try:
                if Path(path).exists():
                    with open(path) as f:
                        limit_str = f.read().strip()
                    # cgroup v2 reports "max" when unlimited
                    if limit_str == "max":
                        continue
                    limit_bytes = int(limit_str)
                    if limit_bytes < (1 << 62):
                        return limit_bytes / (1024**3)
            except (OSError, ValueError) as e:
                logger.debug(f"Could not read {path}: {e}")

        return None

    def _detect_cpus(self) -> int:
        """
        Detect CPU core count.

        Returns:
            SLURM_CPUS_PER_TASK if set, else physical cores (fallback to 4)
        """
        slurm_cpus = os.getenv("SLURM_CPUS_PER_TASK")
        if slurm_cpus:
            try:
                return max(1, int(slurm_cpus))
            except ValueError:
                logger.warning(f"Invalid SLURM_CPUS_PER_TASK value: {slurm_cpus}")

        try:
            cores = psutil.cpu_count(logical=False)
            if cores:
                return cores
        except Exception as e:
            logger.debug(f"psutil.cpu_count(logical=False) failed: {e}")

        cores = os.cpu_count()
        if cores:
            return cores

        logger.warning("Could not detect CPU count, using conservative 4 cores")
        return 4

    def sort_memory_per_thread(self, threads: int) -> str:
        """
        Per-thread memory bound for the coordinate sorter, e.g. ``"2G"``.

        Args:
            threads: Number of sort threads that share the memory budget

        Returns:
            Memory string in whole gigabytes, clamped to the configured range
        """
        threads = max(1, int(threads))
        per_thread = int(self.memory_gb * self.sort_memory_fraction / threads)
        per_thread = max(self.min_sort_memory_gb, min(self.max_sort_memory_gb, per_thread))
        return f"{per_thread}G"
