# plugin_manager.py
"""
Plugin Manager for the Social Media Poster
==========================================

This module provides utilities for discovering, loading, and instantiating
plugins. It is a facade over the lower-level registry in the plugins package.

Usage:
------
The plugin_manager is instantiated as a singleton at the module level and should be
imported and used directly by application code:

    from plugin_manager import plugin_manager

    # Discover available plugins
    plugin_manager.discover_plugins()

    # Create a plugin by name
    oauth2 = plugin_manager.create_authorization_plugin("twitter_oauth2", token_store=store)
"""

import importlib
import logging
import os
from typing import Dict, Type, Optional

from fastapi import APIRouter

from plugins import (
    AuthorizationPlugin,
    ResourcePlugin,
    RoutePlugin,
    get_authorization_plugin,
    get_resource_plugin,
    get_all_route_plugins
)

logger = logging.getLogger(__name__)

class PluginManager:
    """
    Manager for poster plugins.

    Responsible for:
    - Discovering plugin packages in the plugins directory
    - Creating plugin instances
    - Collecting the routers contributed by route plugins
    """

    def __init__(self):
        self._plugin_dir = os.path.join(os.path.dirname(__file__), "plugins")
        self._loaded_plugins = set()

    def discover_plugins(self):
        """
        Import every plugin package under plugins/.

        Each imported package is expected to register its plugins with the
        registry. Already-loaded packages are skipped.
        """
        for item in sorted(os.listdir(self._plugin_dir)):
            if os.path.isdir(os.path.join(self._plugin_dir, item)) and not item.startswith('__'):
                module_name = f"plugins.{item}"
                if module_name not in self._loaded_plugins:
                    try:
                        importlib.import_module(module_name)
                        self._loaded_plugins.add(module_name)
                        logger.info(f"Discovered plugin: {module_name}")
                    except ImportError as e:
                        logger.error(f"Error loading plugin {module_name}: {e}")

    def create_authorization_plugin(self, service_name: str, **kwargs) -> Optional[AuthorizationPlugin]:
        """
        Create an instance of an authorization plugin.

        Args:
            service_name (str): The unique service name of the plugin to instantiate
            **kwargs: Keyword arguments passed to the plugin constructor

        Returns:
            Optional[AuthorizationPlugin]: A plugin instance, or None if not registered
        """
        plugin_class = get_authorization_plugin(service_name)
        if plugin_class:
            return plugin_class(**kwargs)
        return None

    def create_resource_plugin(self, service_name: str, **kwargs) -> Optional[ResourcePlugin]:
        """
        Create an instance of a resource plugin.

        Args:
            service_name (str): The unique service name of the plugin to instantiate
            **kwargs: Keyword arguments passed to the plugin constructor

        Returns:
            Optional[ResourcePlugin]: A plugin instance, or None if not registered
        """
        plugin_class = get_resource_plugin(service_name)
        if plugin_class:
            return plugin_class(**kwargs)
        return None

    def get_all_route_plugins(self) -> Dict[str, Type[RoutePlugin]]:
        return get_all_route_plugins()

    def get_service_routers(self) -> Dict[str, APIRouter]:
        """
        Get the routers of all registered route plugins.

        Returns:
            Dict[str, APIRouter]: Routers keyed by service name; each router
            already carries the plugin's route prefix
        """
        routers = {}
        for service_name, plugin_class in self.get_all_route_plugins().items():
            plugin = plugin_class()
            router = APIRouter(prefix=plugin.route_prefix)
            router.include_router(plugin.get_router())
            routers[service_name] = router
            logger.info(f"Found route plugin: {service_name}")
        return routers

# Singleton
plugin_manager = PluginManager()
