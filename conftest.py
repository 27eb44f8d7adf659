import asyncio
import inspect


def pytest_pyfunc_call(pyfuncitem):
    """
    Run coroutine tests marked with @pytest.mark.asyncio (generated clients are
    async) without requiring pytest-asyncio.
    """
    if pyfuncitem.get_closest_marker("asyncio") is None:
        return None

    test_func = pyfuncitem.obj
    if not inspect.iscoroutinefunction(test_func):
        return None
    # Only pass fixtures that correspond to the function signature.
    fixtureinfo = getattr(pyfuncitem, "_fixtureinfo", None)
    wanted = set(getattr(fixtureinfo, "argnames", []) or [])
    kwargs = {k: v for k, v in pyfuncitem.funcargs.items() if k in wanted}
    asyncio.run(test_func(**kwargs))
    return True
