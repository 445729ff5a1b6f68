import unittest

from glasschess.actions import MarkSaved, Refresh, Scroll
from glasschess.oracle import MoveOracle
from glasschess.state.contracts import GameState, build_initial_state
from glasschess.state.store import Store


def _store() -> Store:
    return Store(build_initial_state(MoveOracle(), now=0), clock=lambda: 1_000)


class StoreTests(unittest.TestCase):
    def test_listener_gets_new_and_previous_state(self) -> None:
        store = _store()
        before = store.state
        seen: list[tuple[GameState, GameState]] = []
        store.subscribe(lambda new, prev: seen.append((new, prev)))
        store.dispatch(Scroll("down"))
        self.assertEqual(len(seen), 1)
        new, prev = seen[0]
        self.assertIs(prev, before)
        self.assertIs(new, store.get_state())
        self.assertEqual(new.phase, "piece_select")
        self.assertEqual(new.phase_entered_at, 1_000)

    def test_noop_does_not_notify(self) -> None:
        store = _store()
        seen: list[GameState] = []
        store.subscribe(lambda new, prev: seen.append(new))
        before = store.state
        store.dispatch(MarkSaved())
        self.assertIs(store.state, before)
        self.assertEqual(seen, [])

    def test_refresh_with_same_position_does_not_notify(self) -> None:
        oracle = MoveOracle()
        store = Store(build_initial_state(oracle, now=0), clock=lambda: 1_000)
        seen: list[GameState] = []
        store.subscribe(lambda new, prev: seen.append(new))
        before = store.state
        store.dispatch(Refresh.from_snapshot(oracle.state_snapshot()))
        self.assertIs(store.state, before)
        self.assertEqual(seen, [])

    def test_unsubscribe(self) -> None:
        store = _store()
        seen: list[GameState] = []
        unsubscribe = store.subscribe(lambda new, prev: seen.append(new))
        unsubscribe()
        unsubscribe()
        store.dispatch(Scroll("down"))
        self.assertEqual(seen, [])

    def test_failing_listener_does_not_block_others(self) -> None:
        store = _store()
        seen: list[GameState] = []

        def broken(new: GameState, prev: GameState) -> None:
            raise RuntimeError("listener bug")

        store.subscribe(broken)
        store.subscribe(lambda new, prev: seen.append(new))
        with self.assertLogs("glasschess.state.store", level="ERROR"):
            store.dispatch(Scroll("down"))
        self.assertEqual(len(seen), 1)

    def test_listener_may_unsubscribe_during_dispatch(self) -> None:
        store = _store()
        calls: list[str] = []
        unsubscribe_first = None

        def first(new: GameState, prev: GameState) -> None:
            calls.append("first")
            assert unsubscribe_first is not None
            unsubscribe_first()

        unsubscribe_first = store.subscribe(first)
        store.subscribe(lambda new, prev: calls.append("second"))
        store.dispatch(Scroll("down"))
        store.dispatch(Scroll("down"))
        self.assertEqual(calls, ["first", "second", "second"])

    def test_nested_dispatch_from_listener(self) -> None:
        store = _store()
        phases: list[str] = []

        def advance_once(new: GameState, prev: GameState) -> None:
            phases.append(new.phase)
            if new.phase == "piece_select" and prev.phase == "idle":
                store.dispatch(Scroll("down"))

        store.subscribe(advance_once)
        store.dispatch(Scroll("down"))
        self.assertEqual(phases, ["piece_select", "piece_select"])
        self.assertEqual(store.state.selected_piece_id, "w-n-g1")


if __name__ == "__main__":
    unittest.main()
