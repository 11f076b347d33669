"""
Tenant infrastructure: code repositories, database credentials, deploy URLs.

The provisioner either returns the resource description or raises
UpstreamError. Deciding what a failure means (placeholder and continue) is
the saga's job, not the provisioner's.
"""
import base64
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

import requests

from app.core.config import Settings, settings as default_settings
from app.core.exceptions import UpstreamError
from app.schemas.tenant import TenantProvisionRequest
from app.utils.slug import slugify

logger = logging.getLogger(__name__)

REPOSITORY_TYPES = ("frontend", "backend")


@dataclass
class RealResources:
    resources: Dict[str, Any]
    placeholder = False


@dataclass
class PlaceholderResources:
    resources: Dict[str, Any]
    reason: str
    placeholder = True


ProvisioningResult = Union[RealResources, PlaceholderResources]


def repository_name(slug: str, repo_type: str) -> str:
    return f"{slug}-{repo_type.capitalize()}"


def deploy_urls(descriptor: TenantProvisionRequest, slug: str, config: Settings) -> Dict[str, str]:
    frontend_host = descriptor.domain or f"{slug}.{config.TENANT_DOMAIN_SUFFIX}"
    return {
        "frontend_url": f"https://{frontend_host}",
        "backend_url": f"https://{slug}-api.{config.TENANT_DOMAIN_SUFFIX}",
    }


def build_placeholder_resources(
    descriptor: TenantProvisionRequest, reason: str, config: Optional[Settings] = None
) -> PlaceholderResources:
    """Same shape as a real result, no credentials, names derived from the slug only."""
    config = config or default_settings
    slug = slugify(descriptor.agency_name)
    db_name = f"{slug}_db".replace("-", "_")
    resources = {
        "slug": slug,
        "repositories": {
            repo_type: {"name": repository_name(slug, repo_type), "url": None, "deploy_url": None}
            for repo_type in REPOSITORY_TYPES
        },
        "database": {
            "name": db_name,
            "user": f"{slug}_user".replace("-", "_"),
            "host": None,
            "port": None,
            "url": None,
        },
        "deploy": {"frontend_url": None, "backend_url": None},
        "placeholder": True,
        "reason": reason,
    }
    return PlaceholderResources(resources=resources, reason=reason)


class ResourceProvisioner:
    def provision(self, descriptor: TenantProvisionRequest) -> Dict[str, Any]:
        raise NotImplementedError


class GitHubResourceProvisioner(ResourceProvisioner):
    """
    Creates private frontend/backend repositories from template repositories,
    writes an agency-specific .env.example into each, generates database
    credentials and derives the deploy URLs.
    """

    def __init__(self, config: Optional[Settings] = None, session: Optional[requests.Session] = None):
        self.config = config or default_settings
        self.http = session or requests.Session()

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.GITHUB_TOKEN}",
            "Accept": "application/vnd.github+json",
        }

    def _templates(self) -> Dict[str, str]:
        return {
            "frontend": self.config.GITHUB_FRONTEND_TEMPLATE,
            "backend": self.config.GITHUB_BACKEND_TEMPLATE,
        }

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.config.GITHUB_API_URL.rstrip('/')}{path}"
        try:
            response = self.http.request(
                method, url, headers=self._headers, timeout=self.config.PROVISIONING_TIMEOUT_SECONDS, **kwargs
            )
        except requests.exceptions.RequestException as e:
            raise UpstreamError(f"GitHub unreachable: {e}", {"path": path})
        return response

    def provision(self, descriptor: TenantProvisionRequest) -> Dict[str, Any]:
        if not self.config.GITHUB_TOKEN:
            raise UpstreamError("GitHub token not configured")

        slug = slugify(descriptor.agency_name)
        logger.info(f"Starting repository creation for agency: {descriptor.agency_name} ({slug})")

        database = self._database_credentials(slug)
        urls = deploy_urls(descriptor, slug, self.config)

        repositories = {}
        for repo_type in REPOSITORY_TYPES:
            repo = self._create_repository(slug, repo_type, descriptor)
            self._write_env_file(repo["name"], self._environment(repo_type, descriptor, slug, database, urls))
            repositories[repo_type] = {
                "name": repo["name"],
                "url": repo.get("html_url"),
                "deploy_url": urls[f"{repo_type}_url"],
            }

        logger.info(f"Repository creation completed for agency: {descriptor.agency_name}")
        return {
            "slug": slug,
            "repositories": repositories,
            "database": database,
            "deploy": urls,
            "placeholder": False,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }

    def _create_repository(self, slug: str, repo_type: str, descriptor: TenantProvisionRequest) -> Dict[str, Any]:
        name = repository_name(slug, repo_type)
        template = self._templates()[repo_type]
        owner = self.config.GITHUB_OWNER
        description = f"{descriptor.agency_name} - {'CRM Frontend' if repo_type == 'frontend' else 'API Backend'}"

        response = self._request(
            "POST",
            f"/repos/{owner}/{template}/generate",
            json={
                "owner": owner,
                "name": name,
                "description": description,
                "private": True,
                "include_all_branches": False,
            },
        )
        if response.status_code >= 400:
            raise UpstreamError(
                f"Failed to create {repo_type} repository {name}",
                {"status_code": response.status_code, "body": response.text[:500]},
            )
        logger.info(f"Created {repo_type} repository: {name}")
        data = response.json()
        data.setdefault("name", name)
        return data

    def _write_env_file(self, repo_name: str, env: Dict[str, Any]) -> None:
        owner = self.config.GITHUB_OWNER
        path = f"/repos/{owner}/{repo_name}/contents/.env.example"
        content = "\n".join(f"{key}={value}" for key, value in env.items())

        existing = self._request("GET", path)
        body = {
            "message": "Add agency-specific environment variables",
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
        }
        if existing.status_code == 200:
            body["sha"] = existing.json().get("sha")

        response = self._request("PUT", path, json=body)
        if response.status_code >= 400:
            raise UpstreamError(
                f"Failed to configure repository {repo_name}",
                {"status_code": response.status_code, "body": response.text[:500]},
            )

    def _database_credentials(self, slug: str) -> Dict[str, Any]:
        db_name = f"{slug}_db".replace("-", "_")
        db_user = f"{slug}_user".replace("-", "_")
        password = secrets.token_hex(16)
        host = self.config.TENANT_DATABASE_HOST
        port = self.config.TENANT_DATABASE_PORT
        return {
            "name": db_name,
            "user": db_user,
            "password": password,
            "host": host,
            "port": port,
            "url": f"postgresql://{db_user}:{password}@{host}:{port}/{db_name}",
        }

    def _environment(
        self,
        repo_type: str,
        descriptor: TenantProvisionRequest,
        slug: str,
        database: Dict[str, Any],
        urls: Dict[str, str],
    ) -> Dict[str, Any]:
        base = {
            "AGENCY_NAME": descriptor.agency_name,
            "AGENCY_SLUG": slug,
            "AGENCY_DOMAIN": descriptor.domain or f"{slug}.{self.config.TENANT_DOMAIN_SUFFIX}",
            "NODE_ENV": "production",
        }
        if repo_type == "backend":
            return {
                **base,
                "DATABASE_URL": database["url"],
                "JWT_SECRET": secrets.token_hex(32),
                "FRONTEND_URL": urls["frontend_url"],
            }
        return {
            **base,
            "REACT_APP_API_URL": urls["backend_url"],
            "REACT_APP_AGENCY_NAME": descriptor.agency_name,
            "REACT_APP_AGENCY_LOGO": descriptor.logo_url or "",
            "REACT_APP_PRIMARY_COLOR": descriptor.primary_color or "#3B82F6",
            "REACT_APP_SECONDARY_COLOR": descriptor.secondary_color or "#1E40AF",
        }
