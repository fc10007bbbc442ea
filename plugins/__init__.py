# plugins/__init__.py
"""
Plugin System for the Social Media Poster
=========================================

This module provides the foundation for the plugin architecture of the poster.
It defines the base interfaces that all plugins must implement and provides
functionality for plugin registration and lookup.

The plugin system supports three types of plugins:
1. Authorization Plugins: Run an authorization flow with the platform and
   leave the resulting credentials in the session token store
2. Resource Plugins: Call the platform's media-upload and posting endpoints
   with those credentials
3. Route Plugins: Provide the HTTP endpoints that drive the other two

Plugin Lifecycle:
---------------
1. Plugin classes are defined in separate modules
2. Plugins are registered with the registry using the registration functions
3. The application discovers and loads plugins at startup
4. Plugin instances are created when needed for specific operations
"""

from typing import Dict, List, Type, Optional, Any
import logging
from enum import Enum

logger = logging.getLogger(__name__)

class PluginType(str, Enum):
    """
    Enum defining the types of plugins supported by the system.

    Types:
        AUTHORIZATION: Plugins that authenticate the user with the platform
        RESOURCE: Plugins that call the platform API on the user's behalf
        ROUTE: Plugins that provide HTTP endpoints
    """
    AUTHORIZATION = "authorization"
    RESOURCE = "resource"
    ROUTE = "route"

class PluginBase:
    """
    Base class for all plugins.

    Class Attributes:
        plugin_type (PluginType): The type of plugin
        service_name (str): Unique identifier for the plugin within its type
    """

    plugin_type: PluginType
    service_name: str

    @classmethod
    def get_metadata(cls) -> Dict[str, Any]:
        """
        Return metadata about the plugin for discovery and introspection.

        Returns:
            Dict[str, Any]: plugin_type, service_name and class_name
        """
        return {
            "plugin_type": cls.plugin_type,
            "service_name": cls.service_name,
            "class_name": cls.__name__
        }

class AuthorizationPlugin(PluginBase):
    """
    Base class for authorization plugins.

    Authorization plugins are responsible for:
    - Building the provider's authorization URL
    - Persisting the pending-flow secrets in the session token store
    - Completing the flow on callback and storing the resulting credentials

    Class Attributes:
        plugin_type (PluginType): Set to AUTHORIZATION for all auth plugins
    """

    plugin_type = PluginType.AUTHORIZATION

    async def get_authorization_url(self, session_id: str, **kwargs) -> str:
        """
        Start an authorization flow for a session.

        Args:
            session_id (str): The opaque session id presenting the callback later

        Returns:
            str: The URL to redirect the user to

        Raises:
            NotImplementedError: If the subclass doesn't implement this method
        """
        raise NotImplementedError("Subclasses must implement get_authorization_url")

    async def process_callback(self, session_id: str, **params) -> str:
        """
        Complete an authorization flow from the provider's callback.

        Args:
            session_id (str): The opaque session id of the callback request
            **params: The callback query parameters

        Returns:
            str: The access token now stored for the session

        Raises:
            NotImplementedError: If the subclass doesn't implement this method
        """
        raise NotImplementedError("Subclasses must implement process_callback")

class ResourcePlugin(PluginBase):
    """
    Base class for resource plugins that call the platform API.

    Class Attributes:
        plugin_type (PluginType): Set to RESOURCE for all resource plugins
    """

    plugin_type = PluginType.RESOURCE

    async def upload_media(self, credentials: Any, image_path: str) -> str:
        """Upload an image and return the platform's media id."""
        raise NotImplementedError("Subclasses must implement upload_media")

    async def create_post(self, credentials: Any, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Create a post and return the platform's representation of it."""
        raise NotImplementedError("Subclasses must implement create_post")

    async def get_me(self, credentials: Any) -> Dict[str, Any]:
        """Fetch the authenticated user's profile."""
        raise NotImplementedError("Subclasses must implement get_me")

class RoutePlugin(PluginBase):
    """
    Base class for plugins that provide their own routes.

    Class Attributes:
        plugin_type (PluginType): Set to ROUTE for all route plugins
        route_prefix (str): Prefix the router is mounted under
    """

    plugin_type = PluginType.ROUTE
    route_prefix: str = ""

    def get_router(self):
        """
        Get the router for this plugin's routes.

        Returns:
            fastapi.APIRouter: The router with all plugin-specific routes

        Raises:
            NotImplementedError: If the subclass doesn't implement this method
        """
        raise NotImplementedError("Subclasses must implement get_router")

# Plugin registry
_authorization_plugins: Dict[str, Type[AuthorizationPlugin]] = {}
_resource_plugins: Dict[str, Type[ResourcePlugin]] = {}
_route_plugins: Dict[str, Type[RoutePlugin]] = {}

def register_authorization_plugin(plugin_class: Type[AuthorizationPlugin]) -> None:
    """Register an authorization plugin under its service_name."""
    _authorization_plugins[plugin_class.service_name] = plugin_class
    logger.info(f"Registered authorization plugin: {plugin_class.service_name}")

def register_resource_plugin(plugin_class: Type[ResourcePlugin]) -> None:
    """Register a resource plugin under its service_name."""
    _resource_plugins[plugin_class.service_name] = plugin_class
    logger.info(f"Registered resource plugin: {plugin_class.service_name}")

def register_route_plugin(plugin_class: Type[RoutePlugin]) -> None:
    """Register a route plugin under its service_name."""
    _route_plugins[plugin_class.service_name] = plugin_class
    logger.info(f"Registered route plugin: {plugin_class.service_name}")

def get_authorization_plugin(service_name: str) -> Optional[Type[AuthorizationPlugin]]:
    return _authorization_plugins.get(service_name)

def get_resource_plugin(service_name: str) -> Optional[Type[ResourcePlugin]]:
    return _resource_plugins.get(service_name)

def get_all_route_plugins() -> Dict[str, Type[RoutePlugin]]:
    return _route_plugins.copy()

def list_plugins() -> List[Dict[str, Any]]:
    """Metadata for every registered plugin."""
    plugins = []
    for registry in (_authorization_plugins, _resource_plugins, _route_plugins):
        plugins.extend(plugin_class.get_metadata() for plugin_class in registry.values())
    return plugins
