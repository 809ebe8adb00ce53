"""Boot configuration UPgrader (BOOTUP).

Upgrade a GitOps cluster's pinned version stream and replay boot configuration
changes onto the cluster's repository as a merge request.
"""

__version__ = "0.1.0"
__author__ = "Platform Engineering Team"
__license__ = "Apache-2.0"
