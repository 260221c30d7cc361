from .step_10_check_prerequisites import CheckPrerequisitesStep
from .step_15_ensure_snap import EnsureSnapStep
from .step_20_update_system import UpdateSystemStep
from .step_30_install_utilities import InstallUtilitiesStep
from .step_40_install_docker import InstallDockerStep
from .step_50_install_miniconda import InstallMinicondaStep
from .step_60_install_cuda import InstallCudaStep
from .step_70_configure_gpu_runtime import ConfigureGpuRuntimeStep
from .step_80_cleanup_downloads import CleanupDownloadsStep
from .step_85_wait_for_docker import WaitForDockerStep
from .step_90_pull_image import PullImageStep
from .step_95_install_shell_framework import InstallShellFrameworkStep

__all__ = [
    "CheckPrerequisitesStep",
    "EnsureSnapStep",
    "UpdateSystemStep",
    "InstallUtilitiesStep",
    "InstallDockerStep",
    "InstallMinicondaStep",
    "InstallCudaStep",
    "ConfigureGpuRuntimeStep",
    "CleanupDownloadsStep",
    "WaitForDockerStep",
    "PullImageStep",
    "InstallShellFrameworkStep",
]
