"""Config flow for WLED Sync integration."""
from __future__ import annotations

import logging
import re
from typing import Any

import voluptuous as vol

from homeassistant import config_entries, core, exceptions
from homeassistant.core import callback
from homeassistant.data_entry_flow import FlowResult
from homeassistant.helpers import config_validation as cv
from homeassistant.helpers.aiohttp_client import async_get_clientsession

from .api import WLEDApiClient, WLEDApiError
from .const import (
    CONF_HOSTS,
    CONF_POLL_INTERVAL,
    CONF_REALTIME,
    CONFIG_ENTRY_VERSION,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_REALTIME,
    DOMAIN,
)

_LOGGER = logging.getLogger(__name__)

_HOST_SEPARATOR = re.compile(r"[,\s]+")


def parse_hosts(value: str | list[str]) -> list[str]:
    """Split a comma or whitespace separated host list, dropping duplicates."""
    if isinstance(value, str):
        value = _HOST_SEPARATOR.split(value)
    return list(dict.fromkeys(host.strip() for host in value if host.strip()))


async def validate_hosts(
    hass: core.HomeAssistant, user_input: dict[str, Any]
) -> dict[str, Any]:
    """Validate that at least one configured host is a WLED device.

    Return the input with the host list normalized.
    """
    hosts = parse_hosts(user_input[CONF_HOSTS])
    if not hosts:
        raise NoHosts

    session = async_get_clientsession(hass)
    reachable = 0
    async with WLEDApiClient(session=session) as client:
        for host in hosts:
            try:
                info = await client.fetch_metadata(host)
            except WLEDApiError as err:
                _LOGGER.debug("Host %s did not answer: %s", host, err)
                continue
            _LOGGER.debug("Found %s at %s", info.name, host)
            reachable += 1

    if not reachable:
        raise CannotConnect(f"None of {len(hosts)} hosts answered")

    return {**user_input, CONF_HOSTS: hosts}


@config_entries.HANDLERS.register(DOMAIN)
class WLEDSyncFlowHandler(config_entries.ConfigFlow, domain=DOMAIN):
    """Handle a config flow for WLED Sync."""

    VERSION = CONFIG_ENTRY_VERSION
    CONNECTION_CLASS = config_entries.CONN_CLASS_LOCAL_PUSH

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Handle the initial step."""
        await self.async_set_unique_id(DOMAIN)
        self._abort_if_unique_id_configured()

        errors: dict[str, str] = {}

        if user_input is not None:
            try:
                user_input = await validate_hosts(self.hass, user_input)

            except NoHosts:
                errors[CONF_HOSTS] = "no_hosts"
            except CannotConnect as conn_ex:
                _LOGGER.warning("Cannot connect: %s", conn_ex)
                errors[CONF_HOSTS] = "cannot_connect"
            except Exception as ex:  # pylint: disable=broad-except
                _LOGGER.exception("Unexpected exception: %s", ex)
                errors["base"] = "unknown"

            if not errors:
                return self.async_create_entry(title="WLED Sync", data=user_input)

        return self.async_show_form(
            step_id="user",
            data_schema=vol.Schema(
                {
                    vol.Required(CONF_HOSTS): cv.string,
                    vol.Optional(
                        CONF_POLL_INTERVAL, default=DEFAULT_POLL_INTERVAL
                    ): cv.positive_int,
                }
            ),
            errors=errors,
        )

    @staticmethod
    @callback
    def async_get_options_flow(
        config_entry: config_entries.ConfigEntry,
    ) -> WLEDSyncOptionsFlowHandler:
        """Get the options flow."""
        return WLEDSyncOptionsFlowHandler(config_entry)


class WLEDSyncOptionsFlowHandler(config_entries.OptionsFlow):
    """Handle options."""

    def __init__(self, config_entry: config_entries.ConfigEntry) -> None:
        """Initialize options flow."""
        self.options = dict(config_entry.options)

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Manage the options."""
        entry = self.config_entry
        old_hosts = entry.options.get(CONF_HOSTS, entry.data.get(CONF_HOSTS, []))

        errors: dict[str, str] = {}

        if user_input is not None:
            try:
                if parse_hosts(user_input[CONF_HOSTS]) != old_hosts:
                    user_input = await validate_hosts(self.hass, user_input)
                else:
                    user_input = {**user_input, CONF_HOSTS: old_hosts}

            except NoHosts:
                errors[CONF_HOSTS] = "no_hosts"
            except CannotConnect as conn_ex:
                _LOGGER.warning("Cannot connect: %s", conn_ex)
                errors[CONF_HOSTS] = "cannot_connect"
            except Exception as ex:  # pylint: disable=broad-except
                _LOGGER.exception("Unexpected exception: %s", ex)
                errors["base"] = "unknown"

            if not errors:
                self.options.update(user_input)
                return self.async_create_entry(title="", data=self.options)

        options_schema = vol.Schema(
            {
                vol.Required(CONF_HOSTS, default=", ".join(old_hosts)): cv.string,
                vol.Optional(
                    CONF_POLL_INTERVAL,
                    default=entry.options.get(
                        CONF_POLL_INTERVAL,
                        entry.data.get(CONF_POLL_INTERVAL, DEFAULT_POLL_INTERVAL),
                    ),
                ): cv.positive_int,
                vol.Required(
                    CONF_REALTIME,
                    default=entry.options.get(CONF_REALTIME, DEFAULT_REALTIME),
                ): cv.boolean,
            }
        )

        return self.async_show_form(
            step_id="init",
            data_schema=options_schema,
            errors=errors,
        )


class CannotConnect(exceptions.HomeAssistantError):
    """Error to indicate we cannot connect."""


class NoHosts(exceptions.HomeAssistantError):
    """Error to indicate no host was entered."""
