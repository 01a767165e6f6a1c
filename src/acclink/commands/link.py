"""Link commands -- drive the account-linking flow from a terminal.

Provides ``acclink link``, ``acclink unlink`` and ``acclink status``. Each
command loads the plugin's configuration list from the configured store,
wraps it in a :class:`~acclink.linking.LinkingSessionController`, and
renders the session's state changes as prompts and messages.

Typical workflow::

    acclink link homebridge-nest-cam --alias Nest-cam     # interactive login
    acclink status homebridge-nest-cam
    acclink unlink homebridge-nest-cam --alias Nest-cam
"""

from __future__ import annotations

from typing import Any

import typer

from acclink.channel import CANCEL, Channel, create_channel
from acclink.exceptions import AcclinkError, LinkingError, PersistenceError, StepValidationError
from acclink.exit_codes import EXIT_PERSISTENCE_FAILURE
from acclink.linking import LinkingSessionController, rules_for
from acclink.models import GlobalConfig, LinkingStep, PluginConfigRecord, PluginTarget, SessionState
from acclink.output import error, info, print_table, progress, success, suggest, warning
from acclink.store import create_store


class _StepPrompter:
    """State listener that asks the user for each step the agent requests."""

    def __init__(self, controller: LinkingSessionController) -> None:
        self._controller = controller
        self._announced_waiting = ""

    def __call__(self, state: SessionState) -> None:
        if state.account_linking_error:
            # Terminal for this session; stop listening.
            self._controller.close_session()
            return
        if not state.doing_account_linking:
            # Credentials arrived; the flow is over.
            self._controller.close_session()
            return
        if state.waiting:
            if state.waiting_message and state.waiting_message != self._announced_waiting:
                progress(state.waiting_message)
                self._announced_waiting = state.waiting_message
            return
        if state.step == LinkingStep.NONE:
            return

        rules = rules_for(state.step)
        if state.field_error_message:
            warning(state.field_error_message)
        while True:
            value = typer.prompt(rules.label, hide_input=rules.secret)
            try:
                self._controller.submit_step(value)
                return
            except StepValidationError as exc:
                error(exc.reason)


def _resolved_config(ctx: typer.Context) -> GlobalConfig:
    config = ctx.obj.get("config") if ctx.obj else None
    if config is None:
        from acclink.config import resolve_config

        config = resolve_config()
    return config


def _load_config_list(config: GlobalConfig, plugin: str) -> list[dict[str, Any]]:
    store = create_store(config)
    try:
        return store.load(plugin)
    except AcclinkError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def _open_controller(
    config: GlobalConfig,
    target: PluginTarget,
    config_list: list[dict[str, Any]],
) -> tuple[LinkingSessionController, Channel]:
    try:
        channel = create_channel(config, target.name)
    except AcclinkError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    try:
        controller = LinkingSessionController(target, config_list, channel, create_store(config))
    except AcclinkError as exc:
        channel.close()
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    return controller, channel


def link_command(
    ctx: typer.Context,
    plugin: str = typer.Argument(help="Plugin package name, e.g. homebridge-nest-cam."),
    alias: str = typer.Option(..., "--alias", "-a", help="Platform alias of the plugin."),
    manual: bool = typer.Option(
        False, "--manual", help="Skip automated linking and save the record for manual setup."
    ),
) -> None:
    """Link a third-party account to a plugin.

    Opens a channel to the plugin's linking agent, prompts for each field
    the agent asks for (email, password, verification code), and saves
    the credentials it returns into the plugin configuration.

    Raises:
        typer.Exit: With code 3 if the agent reports an error or the channel
            is lost, code 8 if the configuration could not be saved.

    Example::

        acclink link homebridge-nest-cam --alias Nest-cam
        acclink link homebridge-nest-cam --alias Nest-cam --manual
    """
    config = _resolved_config(ctx)
    config_list = _load_config_list(config, plugin)
    controller, channel = _open_controller(
        config, PluginTarget(name=plugin, alias=alias), config_list
    )

    with controller:
        if manual:
            controller.cancel_manual_override()
            result = controller.save_and_close()
            if not result.ok:
                raise typer.Exit(code=EXIT_PERSISTENCE_FAILURE)
            info(f'Saved "{alias}" without linked credentials.')
            return

        if not controller.should_offer_linking():
            info(f'"{plugin}" already has a linked account.')
            suggest(f"Unlink it: acclink unlink {plugin} --alias {alias}")
            return

        controller.subscribe(_StepPrompter(controller))
        try:
            controller.start_linking()
            channel.listen()
        except SystemExit:
            # Ctrl+C exits through the SIGINT handler; stop the agent first.
            channel.send(CANCEL)
            info("\nCancelled.")
            raise

    try:
        _check_outcome(controller)
    except LinkingError as exc:
        error(str(exc))
        suggest(f"Configure it by hand: acclink link {plugin} --alias {alias} --manual")
        raise typer.Exit(code=exc.exit_code) from None
    except PersistenceError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    success(f'Account linked for "{alias}".')


def _check_outcome(controller: LinkingSessionController) -> None:
    """Raise if the finished flow did not leave saved credentials behind."""
    state = controller.state
    if state.account_linking_error:
        raise LinkingError(state.account_linking_error_message)
    if not controller.record.is_linked:
        raise LinkingError("The linking agent stopped before sending credentials.")
    if controller.last_save is not None and not controller.last_save.ok:
        raise PersistenceError(f"Credentials received but not saved: {controller.last_save.error}")


def unlink_command(
    ctx: typer.Context,
    plugin: str = typer.Argument(help="Plugin package name."),
    alias: str = typer.Option(..., "--alias", "-a", help="Platform alias of the plugin."),
) -> None:
    """Remove the linked account and the plugin's configuration.

    Clears the whole configuration list and saves the empty list. Asks for
    confirmation unless the ``--force`` flag is active.

    Raises:
        typer.Exit: With code 8 if the empty list could not be saved.

    Example::

        acclink unlink homebridge-nest-cam --alias Nest-cam
        acclink --force unlink homebridge-nest-cam --alias Nest-cam
    """
    config = _resolved_config(ctx)
    config_list = _load_config_list(config, plugin)
    if not config_list:
        info(f'No configuration stored for "{plugin}".')
        return

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm(f'Unlink the account and remove the configuration of "{plugin}"?')
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    controller, _ = _open_controller(config, PluginTarget(name=plugin, alias=alias), config_list)

    with controller:
        result = controller.unlink()
    if not result.ok:
        raise typer.Exit(code=EXIT_PERSISTENCE_FAILURE)
    success(f'Account unlinked from "{plugin}".')


def status_command(
    ctx: typer.Context,
    plugin: str = typer.Argument(help="Plugin package name."),
) -> None:
    """Show whether the plugin's configuration holds a linked account.

    Example::

        acclink status homebridge-nest-cam
        acclink --json status homebridge-nest-cam
    """
    config = _resolved_config(ctx)
    config_list = _load_config_list(config, plugin)
    if not config_list:
        info(f'No configuration stored for "{plugin}".')
        suggest(f"Link an account: acclink link {plugin} --alias <alias>")
        return

    rows: list[list[str]] = []
    for raw in config_list:
        try:
            record = PluginConfigRecord.model_validate(raw)
        except ValueError:
            rows.append([plugin, "-", "invalid", "-"])
            continue
        token = str(record.google_auth.issue_token or "") if record.google_auth else ""
        preview = token[:8] + "..." if len(token) > 8 else (token or "-")
        rows.append([plugin, record.platform, "yes" if record.is_linked else "no", preview])

    print_table(["Plugin", "Platform", "Linked", "Issue Token"], rows, title="Account Linking")
