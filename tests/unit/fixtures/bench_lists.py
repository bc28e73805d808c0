from microbench import after_class_methods, before_class_methods, groups


@before_class_methods("set_up_class")
@after_class_methods("tear_down_class")
class ListBench:
    calls = []

    @staticmethod
    def set_up_class():
        ListBench.calls.append("set_up_class")

    @classmethod
    def tear_down_class(cls):
        cls.calls.append("tear_down_class")

    @groups("slow")
    def bench_sort(self):
        sorted(range(100, 0, -1))

    def bench_append(self):
        items = []
        for i in range(10):
            items.append(i)
