import threading
import unittest
from unittest.mock import Mock, patch

from helpers import LIST_EMPTY, LIST_TWO, make_ctx, said_messages
from nightowl.core.errors import RconError
from nightowl.services import idle_checker


def list_responder(samples):
    """Answer ``list`` from a queue of player counts; everything else returns ''."""
    queue = list(samples)

    def run_rcon(command):
        if command == "list":
            count = queue.pop(0)
            return LIST_EMPTY if count == 0 else f"There are {count} of a max of 20 players online: x"
        return ""

    return Mock(side_effect=run_rcon)


class InlineThread:
    """Stand-in for ``threading.Thread`` that runs the target on ``start()``."""

    def __init__(self, target, args=(), **_kwargs):
        self._target = target
        self._args = args

    def start(self):
        self._target(*self._args)


class IdleCheckerTests(unittest.TestCase):
    def setUp(self):
        patcher = patch("nightowl.services.notifier.print_status")
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_enable_twice_is_a_no_op_the_second_time(self):
        ctx = make_ctx()
        self.assertTrue(idle_checker.enable(ctx))
        ctx.state.consecutive_empty_count = 1

        self.assertFalse(idle_checker.enable(ctx))

        self.assertTrue(ctx.state.checker_enabled)
        self.assertEqual(1, ctx.state.consecutive_empty_count)
        self.assertEqual(
            ["| Starting player count checker", "! Player count checker already running"],
            said_messages(ctx.run_rcon),
        )

    def test_disable_when_not_running_reports_and_keeps_state(self):
        ctx = make_ctx()
        self.assertFalse(idle_checker.disable(ctx))
        self.assertFalse(ctx.state.checker_enabled)
        self.assertEqual(["! Player count checker is not running"], said_messages(ctx.run_rcon))

    def test_disable_resets_counter_immediately(self):
        ctx = make_ctx(run_rcon=list_responder([0, 0]), idle_threshold=5)
        idle_checker.enable(ctx)
        idle_checker.sample_once(ctx)
        idle_checker.sample_once(ctx)
        self.assertEqual(2, ctx.state.consecutive_empty_count)

        self.assertTrue(idle_checker.disable(ctx))

        self.assertEqual(0, ctx.state.consecutive_empty_count)
        self.assertIn("| Pausing player count checker", said_messages(ctx.run_rcon))

    def test_non_zero_sample_resets_counter(self):
        ctx = make_ctx(run_rcon=list_responder([0, 0, 3, 0]), idle_threshold=5)
        idle_checker.enable(ctx)
        counts = []
        for _ in range(4):
            idle_checker.sample_once(ctx)
            counts.append(ctx.state.consecutive_empty_count)
        self.assertEqual([1, 2, 0, 1], counts)
        self.assertEqual(0, ctx.state.last_player_count)

    def test_disabled_tick_skips_sample_and_resets_counter(self):
        ctx = make_ctx()
        ctx.state.consecutive_empty_count = 4

        self.assertFalse(idle_checker.sample_once(ctx))

        self.assertEqual(0, ctx.state.consecutive_empty_count)
        ctx.run_rcon.assert_not_called()

    def test_two_empty_samples_do_not_trigger_with_threshold_two(self):
        ctx = make_ctx(run_rcon=list_responder([0, 0]), idle_threshold=2)
        idle_checker.enable(ctx)
        with patch.object(idle_checker.shutdown_coordinator, "request_shutdown") as request_shutdown:
            results = [idle_checker.sample_once(ctx) for _ in range(2)]
        self.assertEqual([False, False], results)
        request_shutdown.assert_not_called()
        self.assertTrue(ctx.state.checker_enabled)

    def test_third_empty_sample_triggers_with_threshold_two(self):
        ctx = make_ctx(run_rcon=list_responder([0, 0, 0]), idle_threshold=2)
        idle_checker.enable(ctx)
        with patch.object(idle_checker.shutdown_coordinator, "request_shutdown") as request_shutdown:
            results = [idle_checker.sample_once(ctx) for _ in range(3)]
        self.assertEqual([False, False, True], results)
        request_shutdown.assert_called_once_with(ctx, on_failure=idle_checker.resume_after_failed_shutdown)
        self.assertFalse(ctx.state.checker_enabled)
        self.assertEqual(0, ctx.state.consecutive_empty_count)

    def test_checker_resumes_when_triggered_shutdown_cannot_stop_server(self):
        def run_rcon(command):
            if command == "list":
                return LIST_EMPTY
            if command == "stop":
                raise RconError("connection refused")
            return ""

        ctx = make_ctx(run_rcon=Mock(side_effect=run_rcon), idle_threshold=0)
        idle_checker.enable(ctx)
        with patch.object(idle_checker.shutdown_coordinator.threading, "Thread", InlineThread), \
             patch.object(idle_checker.shutdown_coordinator.subprocess, "run") as poweroff:
            self.assertTrue(idle_checker.sample_once(ctx))

        poweroff.assert_not_called()
        self.assertFalse(ctx.state.shutdown_in_progress)
        self.assertTrue(ctx.state.checker_enabled)
        self.assertEqual(0, ctx.state.consecutive_empty_count)
        self.assertEqual("| Starting player count checker", said_messages(ctx.run_rcon)[-1])

    def test_per_sample_lines_stay_off_server_chat(self):
        ctx = make_ctx(run_rcon=list_responder([0, 2]), idle_threshold=5)
        idle_checker.enable(ctx)
        idle_checker.sample_once(ctx)
        idle_checker.sample_once(ctx)
        self.assertEqual(["| Starting player count checker"], said_messages(ctx.run_rcon))

    def test_rcon_failure_propagates_without_touching_counter(self):
        ctx = make_ctx(run_rcon=Mock(side_effect=RconError("connection refused")))
        idle_checker.enable(ctx)
        ctx.state.consecutive_empty_count = 1
        with self.assertRaises(RconError):
            idle_checker.sample_once(ctx)
        self.assertEqual(1, ctx.state.consecutive_empty_count)

    def test_unparsable_list_output_is_logged_and_ignored(self):
        ctx = make_ctx(run_rcon=Mock(return_value="Unknown command"))
        idle_checker.enable(ctx)
        self.assertFalse(idle_checker.sample_once(ctx))
        self.assertEqual(0, ctx.state.consecutive_empty_count)
        ctx.log_action.assert_any_call("idle-check", command="list", rejection_message="unrecognised output: Unknown command")

    def test_sample_taken_across_pause_and_resume_is_dropped(self):
        ctx = make_ctx(idle_threshold=5)

        def run_rcon(command):
            if command == "list":
                idle_checker.disable(ctx)
                idle_checker.enable(ctx)
                return LIST_EMPTY
            return ""

        ctx.run_rcon = Mock(side_effect=run_rcon)
        idle_checker.enable(ctx)

        idle_checker.sample_once(ctx)

        self.assertTrue(ctx.state.checker_enabled)
        self.assertEqual(0, ctx.state.consecutive_empty_count)

    def test_loop_keeps_running_after_a_failed_tick(self):
        ctx = make_ctx(idle_check_interval_seconds=0.01)
        calls = []

        def flaky_sample(inner_ctx):
            calls.append(1)
            if len(calls) == 1:
                raise RconError("timed out")
            if len(calls) >= 3:
                inner_ctx.stop_event.set()
            return False

        with patch.object(idle_checker, "sample_once", side_effect=flaky_sample):
            worker = idle_checker.start_idle_checker(ctx)
            worker.join(timeout=5)

        self.assertFalse(worker.is_alive())
        self.assertEqual(3, len(calls))
        ctx.log_exception.assert_called_once()
        self.assertEqual("idle_checker_loop", ctx.log_exception.call_args.args[0])

    def test_concurrent_enable_disable_never_loses_an_update(self):
        ctx = make_ctx(run_rcon=Mock(side_effect=lambda cmd: LIST_EMPTY if cmd == "list" else ""), idle_threshold=10**9)
        results = {"enable": [], "disable": []}
        results_lock = threading.Lock()
        stop_sampling = threading.Event()

        def toggler():
            for _ in range(300):
                enabled = idle_checker.enable(ctx)
                disabled = idle_checker.disable(ctx)
                with results_lock:
                    results["enable"].append(enabled)
                    results["disable"].append(disabled)

        def sampler():
            while not stop_sampling.is_set():
                idle_checker.sample_once(ctx)

        sampling = threading.Thread(target=sampler)
        sampling.start()
        togglers = [threading.Thread(target=toggler) for _ in range(2)]
        for worker in togglers:
            worker.start()
        for worker in togglers:
            worker.join()
        stop_sampling.set()
        sampling.join()

        transitions = sum(results["enable"]) - sum(results["disable"])
        self.assertEqual(int(ctx.state.checker_enabled), transitions)
        idle_checker.disable(ctx)
        self.assertFalse(ctx.state.checker_enabled)
        self.assertEqual(0, ctx.state.consecutive_empty_count)
        self.assertTrue(idle_checker.enable(ctx))
        self.assertEqual(0, ctx.state.consecutive_empty_count)

    def test_found_players_line_reports_count(self):
        ctx = make_ctx(run_rcon=Mock(side_effect=lambda cmd: LIST_TWO if cmd == "list" else ""))
        idle_checker.enable(ctx)
        with patch("nightowl.services.idle_checker.announce") as announce:
            idle_checker.sample_once(ctx)
        announce.assert_called_with(ctx, "- Found 2 player(s)", "progress", to_server=False)


if __name__ == "__main__":
    unittest.main()
