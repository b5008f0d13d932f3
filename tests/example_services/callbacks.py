from servicekit import Hook, Output, Step

from example_services.base import ApplicationService


class WithCallbacks(ApplicationService):
    OUTPUTS = (
        Output("callback_log", list, default_factory=lambda view: []),
        Output("word", str, default=""),
    )
    STEPS = (
        Step("letter_a"),
        Step("letter_b"),
    )
    HOOKS = (
        Hook("before_service_run", "log_before_service"),
        Hook("after_service_run", "log_after_service"),
        Hook("on_service_success", "log_service_success"),
        Hook("on_service_failure", "log_service_failure"),
        Hook("before_step_run", "log_before_step"),
        Hook("after_step_run", "log_after_step"),
        Hook("on_step_success", "log_step_success"),
        Hook("on_step_failure", "log_step_failure"),
    )

    def letter_a(self):
        self.outputs["word"] += "a"

    def letter_b(self):
        self.outputs["word"] += "b"

    def log(self, entry):
        self.outputs["callback_log"].append(entry)

    def log_before_service(self):
        self.log("before_service_run")

    def log_after_service(self):
        self.log("after_service_run")

    def log_service_success(self):
        self.log("on_service_success")

    def log_service_failure(self):
        self.log("on_service_failure")

    def log_before_step(self, step_name):
        self.log(("before_step_run", step_name))

    def log_after_step(self, step_name):
        self.log(("after_step_run", step_name))

    def log_step_success(self, step_name):
        self.log(("on_step_success", step_name))

    def log_step_failure(self, step_name):
        self.log(("on_step_failure", step_name))


class WithCallbacksChild(WithCallbacks):
    STEPS = (Step("letter_c"),)
    HOOKS = (Hook("before_service_run", "log_child_before_service"),)

    def letter_c(self):
        self.outputs["word"] += "c"

    def log_child_before_service(self):
        self.log("child_before_service_run")


class WithCallbacksFailure(WithCallbacks):
    STEPS = (Step("add_error", after="letter_a"),)

    def add_error(self):
        self.errors.add("base", "Something went wrong")


def record_callable_around(service, step_name, proceed):
    service.outputs["callback_log"].append(("callable_around", step_name))
    proceed()


class WithAroundCallbacks(ApplicationService):
    OUTPUTS = (Output("callback_log", list, default_factory=lambda view: []),)
    STEPS = (Step("do_work"),)
    HOOKS = (
        Hook("around_service_run", "outer_wrap"),
        Hook("around_service_run", "inner_wrap"),
        Hook("around_step_run", "wrap_step"),
        Hook("around_step_run", record_callable_around),
    )

    def do_work(self):
        self.outputs["callback_log"].append("do_work")

    def outer_wrap(self, proceed):
        self.outputs["callback_log"].append("outer_before")
        proceed()
        self.outputs["callback_log"].append("outer_after")

    def inner_wrap(self, proceed):
        self.outputs["callback_log"].append("inner_before")
        proceed()
        self.outputs["callback_log"].append("inner_after")

    def wrap_step(self, step_name, proceed):
        self.outputs["callback_log"].append(("around_step_before", step_name))
        proceed()
        self.outputs["callback_log"].append(("around_step_after", step_name))


class WithStepCrash(ApplicationService):
    OUTPUTS = (Output("callback_log", list, default_factory=lambda view: []),)
    STEPS = (Step("explode"),)
    HOOKS = (
        Hook("on_step_success", "log_step_success"),
        Hook("on_step_crash", "log_step_crash"),
        Hook("after_service_run", "log_after_service"),
    )

    def explode(self):
        raise RuntimeError("Step exploded!")

    def log_step_success(self, step_name):
        self.outputs["callback_log"].append(("on_step_success", step_name))

    def log_step_crash(self, step_name, exc):
        self.outputs["callback_log"].append(("on_step_crash", step_name, str(exc)))

    def log_after_service(self):
        self.outputs["callback_log"].append("after_service_run")
