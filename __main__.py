"""Pulumi entry point for the Vault SSH CA stack."""
import logging

import structlog

from sshca_infra.__main__ import SshCaStack
from sshca_infra.config import StackConfig

structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.INFO))
SshCaStack(config=StackConfig.load()).run()
