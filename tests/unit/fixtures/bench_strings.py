from microbench import assertion, before_methods, groups, iterations, param_providers


@groups("strings")
class StringBench:
    def __init__(self):
        self.text = ""

    def provide_sizes(self):
        return [{"size": 1}, {"size": 10}]

    def provide_separators(self):
        return [{"sep": ","}, {"sep": ";"}, {"sep": " "}]

    def set_up(self, iteration):
        self.text = "x" * iteration.parameters["size"]

    @iterations(2)
    @param_providers("provide_sizes", "provide_separators")
    @before_methods("set_up")
    def bench_join(self, iteration):
        iteration.parameters["sep"].join(self.text)

    @iterations(3)
    @groups("fast")
    @assertion("mean < 10 s")
    def bench_upper(self):
        "abc".upper()

    def helper(self):
        return "not a subject"
