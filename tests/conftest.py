"""Shared fixtures for terragrunt-nav tests."""

import os
import textwrap

import pytest

from terragrunt_nav.core.remote import CloneOutcome, CloneStatus


class RecordingCollaborator:
    """Collaborator stand-in that records every parse and overlay."""

    def __init__(self):
        self.parsed = []
        self.overlays = []

    def parse_module_file(self, path, context):
        name = os.path.basename(path)
        self.parsed.append((name, context.do_eval))
        context.configs[name] = {"do_eval": context.do_eval}
        context.ranges[name] = {}
        context.fresh_start = False
        return context

    def evaluate_expression(self, expr, context, quiet=False):
        return expr

    def find_in_parent_folders(self, pattern, context):
        return None

    def overlay_cached_variables(self, cached, inputs):
        self.overlays.append((cached, inputs))

    def directory_passes(self):
        return [name for name, do_eval in self.parsed if not do_eval]


class FakeCloner:
    """Cloner stand-in that materializes the target directory."""

    def __init__(self, outcome=None):
        self.calls = []
        self.outcome = outcome or CloneOutcome(CloneStatus.CLONED)

    def clone(self, repo_url, ref, target_dir):
        self.calls.append((repo_url, ref, target_dir))
        if self.outcome.ok:
            os.makedirs(target_dir, exist_ok=True)
        return self.outcome


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def write(path, content=""):
    """Write dedented content, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content).lstrip("\n"))
    return path


@pytest.fixture
def collaborator():
    return RecordingCollaborator()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def live_tree(tmp_path):
    """
    A small Terragrunt layout:

        root.hcl
        live/dev/app/terragrunt.hcl
        modules/app/main.tf, variables.tf
    """
    write(tmp_path / "root.hcl", """
        locals {
          project = "demo"
        }
    """)
    write(tmp_path / "live" / "dev" / "app" / "terragrunt.hcl", """
        include "root" {
          path = find_in_parent_folders("root.hcl")
        }

        terraform {
          source = "../../../modules/app"
        }

        locals {
          env = "dev"
        }

        inputs = {
          name   = "${local.env}-app"
          region = local.env
        }
    """)
    write(tmp_path / "modules" / "app" / "main.tf", """
        locals {
          prefix = "app"
        }
    """)
    write(tmp_path / "modules" / "app" / "variables.tf", """
        variable "name" {
          default = "unnamed"
        }
    """)
    return tmp_path
