"""Architecture tests using pytest-archon.

These tests enforce layer boundaries inside the tenancy bounded context and
keep the shared kernel independent of it.
"""

from pytest_archon import archrule


class TestTenancyDomainLayerBoundaries:
    """Tests that the domain layer has no forbidden dependencies."""

    def test_domain_does_not_import_infrastructure(self):
        """Domain layer should not know about SQLAlchemy models or repositories."""
        (
            archrule("domain_no_infrastructure")
            .match("tenancy.domain*")
            .should_not_import("tenancy.infrastructure*", "infrastructure*")
            .check("tenancy")
        )

    def test_domain_does_not_import_frameworks(self):
        (
            archrule("domain_no_frameworks")
            .match("tenancy.domain*")
            .should_not_import("fastapi*", "starlette*", "sqlalchemy*")
            .check("tenancy")
        )


class TestTenancyPortsLayerBoundaries:
    """Tests that the ports layer has no forbidden dependencies."""

    def test_ports_does_not_import_infrastructure(self):
        """Ports define the repository contract, not its implementation."""
        (
            archrule("ports_no_infrastructure")
            .match("tenancy.ports*")
            .should_not_import("tenancy.infrastructure*", "sqlalchemy*")
            .check("tenancy")
        )


class TestTenancyApplicationLayerBoundaries:
    def test_application_does_not_import_presentation(self):
        (
            archrule("application_no_presentation")
            .match("tenancy.application*")
            .should_not_import("tenancy.presentation*", "fastapi*")
            .check("tenancy")
        )


class TestSharedKernelIsolation:
    """The shared kernel must not depend on any bounded context."""

    def test_shared_kernel_does_not_import_tenancy(self):
        """Middleware reaches the tenant store only through its protocol."""
        (
            archrule("shared_kernel_no_tenancy")
            .match("shared_kernel*")
            .should_not_import("tenancy*")
            .check("shared_kernel")
        )
