import fakeredis
import httpx
import pytest
import respx

ROBOTS_URL = "https://www.pinterest.com/robots.txt"
ROBOTS_TXT = "User-agent: *\nDisallow: /private/\nAllow: /\n"
PIN_URL = "https://www.pinterest.com/pin/123/"
CDN = "https://v1.pinimg.com/videos/mc"

PIN_HTML = (
    "<html><head>"
    '<meta property="og:title" content="Sunset timelapse">'
    "</head><body><script>"
    '{"video":{"url":"' + CDN + '/720p/sunset.mp4","width":1280,"height":720}}'
    '{"contentUrl":"' + CDN + '/hls/sunset_480.mp4"}'
    '{"owner":{"full_name":"Jane Doe"},"duration":"PT15S"}'
    "</script></body></html>"
)

VIDEO_SIZES = {
    f"{CDN}/720p/sunset.mp4": "5000000",
    f"{CDN}/hls/sunset_480.mp4": "2000000",
}


@pytest.fixture
def pinterest_mock():
    """Mocked Pinterest: robots.txt, one video pin page and CDN HEAD probes.

    Routes are named ``robots``, ``page``, ``head_720`` and ``head_480``.
    """
    with respx.mock(assert_all_called=False) as router:
        router.get(ROBOTS_URL, name="robots").mock(
            return_value=httpx.Response(200, text=ROBOTS_TXT)
        )
        router.get(PIN_URL, name="page").mock(
            return_value=httpx.Response(
                200, text=PIN_HTML, headers={"content-type": "text/html; charset=utf-8"}
            )
        )
        for name, (url, size) in zip(("head_720", "head_480"), VIDEO_SIZES.items()):
            router.head(url, name=name).mock(
                return_value=httpx.Response(200, headers={"content-length": size})
            )
        yield router


@pytest.fixture
def redis_client():
    """An isolated in-process Redis."""
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
