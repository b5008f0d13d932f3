from servicekit import Arg, Output, RemoveArg, RemoveOutput, RemoveStep, Step

from example_services.base import ApplicationService


class OrderedSteps(ApplicationService):
    OUTPUTS = (Output("execution_order", list, default=[]),)

    def step_a(self):
        self.outputs["execution_order"].append("a")

    def step_b(self):
        self.outputs["execution_order"].append("b")

    def step_c(self):
        self.outputs["execution_order"].append("c")

    def step_d(self):
        self.outputs["execution_order"].append("d")


class WithStepInsertion(OrderedSteps):
    STEPS = (
        Step("step_a"),
        Step("step_c"),
        Step("step_b", before="step_c"),
    )


class WithStepAfter(OrderedSteps):
    STEPS = (
        Step("step_a"),
        Step("step_c"),
        Step("step_b", after="step_a"),
    )


class WithStepRemoval(OrderedSteps):
    STEPS = (
        Step("step_a"),
        Step("step_b"),
        Step("step_c"),
        RemoveStep("step_b"),
    )


class WithInheritedInsertion(WithStepInsertion):
    STEPS = (
        Step("step_d", after="step_a"),
        RemoveStep("missing_step"),
    )


class WithMovedStep(WithStepInsertion):
    STEPS = (Step("step_a", after="step_c"),)


class WithRedefinitionBase(ApplicationService):
    ARGS = (
        Arg("name", str),
        Arg("count", int, default=10),
        Arg("options", dict, optional=True),
    )
    OUTPUTS = (
        Output("outcome", str),
        Output("data", dict, default={}),
        Output("status", str, optional=True),
    )
    STEPS = (Step("process"),)

    def process(self):
        self.outputs["outcome"] = f"Base: {self.arguments['name']}"
        self.outputs["data"] = {"count": self.arguments["count"]}


class WithRedefinedArgTypes(WithRedefinitionBase):
    ARGS = (
        Arg("name", (str, bytes)),
        Arg("count", int, optional=True, default=5),
        Arg("options", dict),
    )

    def process(self):
        self.outputs["outcome"] = f"Child: {self.arguments['name']!s}"
        self.outputs["data"] = {"count": self.arguments["count"], "options": self.arguments["options"]}


class WithRedefinedDefaults(WithRedefinitionBase):
    ARGS = (Arg("count", int, default=100),)
    OUTPUTS = (Output("data", dict, default={"initialized": True}),)

    def process(self):
        self.outputs["outcome"] = f"Defaults: {self.arguments['name']}"


class WithRemovedFields(WithRedefinitionBase):
    ARGS = (RemoveArg("options"),)
    OUTPUTS = (RemoveOutput("status"),)


class WithDerivedDefault(ApplicationService):
    ARGS = (
        Arg("first", str),
        Arg("last", str),
        Arg("full", str, default_factory=lambda view: f"{view['first']} {view['last']}"),
    )
    OUTPUTS = (Output("greeting", str, default_factory=lambda view: f"Hello, {view['full']}"),)
    STEPS = (Step("noop", fn=lambda service: None),)


class WithRedefinedGrandchild(WithRedefinedArgTypes):
    ARGS = (
        Arg("name", str),
        Arg("extra", str, optional=True),
    )
    OUTPUTS = (Output("extra_output", str, optional=True),)

    def process(self):
        self.outputs["outcome"] = f"Grandchild: {self.arguments['name']}"
        if self.arguments.get("extra"):
            self.outputs["extra_output"] = self.arguments["extra"]
