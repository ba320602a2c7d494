# tests/fixtures/actions.py
"""
Action mínima e duck-typed para testes estruturais do planner e do Engine.

Registra em `calls` cada fase invocada, sem ler nem escrever dados.
"""

from atlas_datalake.core.pipeline.subfeed import SubFeed
from atlas_datalake.core.pipeline.types import ActionState, PhaseResult


class StubAction:
    def __init__(self, id, inputs=(), outputs=(), *, fail_in=None, no_data=False, recursive_inputs=()):
        self.id = id
        self.state = ActionState.CREATED
        self._inputs = list(inputs)
        self._outputs = list(outputs)
        self._recursive = list(recursive_inputs)
        self.fail_in = fail_in
        self.no_data = no_data
        self.calls = []
        self.received = {}

    @property
    def input_ids(self):
        return list(self._inputs)

    @property
    def output_ids(self):
        return list(self._outputs)

    @property
    def recursive_input_ids(self):
        return list(self._recursive)

    def _phase(self, name, ctx, sub_feeds):
        self.calls.append(name)
        self.received[name] = list(sub_feeds)
        if self.fail_in == name:
            raise RuntimeError(f"{self.id} boom in {name}")
        if name.startswith("pre_"):
            if self._inputs and all(sf.is_skipped for sf in sub_feeds):
                return PhaseResult.skip([SubFeed(o, is_skipped=True) for o in self._outputs], "inputs skipped")
            return PhaseResult.proceed()
        if self.no_data:
            return PhaseResult.no_data([SubFeed(o, is_skipped=True) for o in self._outputs], "nothing new")
        return PhaseResult.proceed([SubFeed(o, data=f"{self.id}:{name}") for o in self._outputs])

    def pre_init(self, ctx, sub_feeds):
        return self._phase("pre_init", ctx, sub_feeds)

    def init(self, ctx, sub_feeds):
        return self._phase("init", ctx, sub_feeds)

    def pre_exec(self, ctx, sub_feeds):
        return self._phase("pre_exec", ctx, sub_feeds)

    def exec(self, ctx, sub_feeds):
        return self._phase("exec", ctx, sub_feeds)

    def post_exec(self, ctx, input_sub_feeds, output_sub_feeds):
        self.calls.append("post_exec")
        if self.fail_in == "post_exec":
            raise RuntimeError(f"{self.id} boom in post_exec")

    def reset(self):
        self.calls.append("reset")
        self.state = ActionState.CREATED

    def get_runtime_metrics(self):
        return {o: {"count": 1} for o in self._outputs}
