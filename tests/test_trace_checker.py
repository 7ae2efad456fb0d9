"""Cloudflare trace 探测器测试"""

import asyncio
import aiohttp
import pytest
from unittest.mock import Mock, AsyncMock, patch

from tracekey.checkers.trace_checker import TraceChecker, build_trace_url, extract_colo
from tracekey.utils.exceptions import CheckerError

TRACE_BODY = "fl=123f1\nh=www.example.com\nip=203.0.113.7\nts=1714564800.123\ncolo=NRT\nloc=JP\n"


def mock_client_session(mock_session):
    """构造 aiohttp.ClientSession 的异步上下文管理器替身"""
    patcher = patch('aiohttp.ClientSession')
    mock_client_session = patcher.start()
    mock_client_session.return_value.__aenter__ = AsyncMock(return_value=mock_session)
    mock_client_session.return_value.__aexit__ = AsyncMock(return_value=None)
    return patcher, mock_client_session


def make_session(response=None, side_effect=None):
    mock_request_context = AsyncMock()
    mock_request_context.__aenter__ = AsyncMock(return_value=response)
    mock_request_context.__aexit__ = AsyncMock(return_value=None)

    mock_session = Mock()
    if side_effect is not None:
        mock_session.get = Mock(side_effect=side_effect)
    else:
        mock_session.get = Mock(return_value=mock_request_context)
    return mock_session


class TestTraceHelpers:
    """trace 辅助函数测试类"""

    @pytest.mark.parametrize('url, expected', [
        ('https://example.com', 'https://example.com/cdn-cgi/trace'),
        ('https://example.com/', 'https://example.com/cdn-cgi/trace'),
        ('https://example.com/blog/post', 'https://example.com/cdn-cgi/trace'),
        ('http://example.com:8080', 'http://example.com:8080/cdn-cgi/trace'),
    ])
    def test_build_trace_url(self, url, expected):
        """测试 trace 地址构建"""
        assert build_trace_url(url) == expected

    @pytest.mark.parametrize('url', ['ftp://example.com', 'example.com', 'https://'])
    def test_build_trace_url_invalid(self, url):
        """测试无效目标地址"""
        with pytest.raises(CheckerError):
            build_trace_url(url)

    def test_extract_colo(self):
        """测试提取 colo"""
        assert extract_colo(TRACE_BODY) == 'NRT'
        assert extract_colo("fl=1\nloc=JP\n") is None
        assert extract_colo("colo=KIX\r\n") == 'KIX'


class TestTraceChecker:
    """TraceChecker 测试类"""

    def setup_method(self):
        """测试前准备"""
        self.checker = TraceChecker({'timeout': 5, 'user_agent': 'tracekey-test/1.0'})

    def test_config(self):
        """测试配置读取"""
        assert self.checker.get_timeout() == 5
        assert self.checker.user_agent == 'tracekey-test/1.0'
        assert self.checker.checker_type == 'trace'
        assert TraceChecker().get_timeout() == 10

    @pytest.mark.asyncio
    async def test_check_success(self):
        """测试成功探测"""
        mock_response = Mock()
        mock_response.status = 200
        mock_response.raise_for_status = Mock()
        mock_response.text = AsyncMock(return_value=TRACE_BODY)
        mock_session = make_session(mock_response)

        patcher, mock_cls = mock_client_session(mock_session)
        try:
            result = await self.checker.check('https://example.com')
        finally:
            patcher.stop()

        assert result.success is True
        assert result.colo == 'NRT'
        assert result.error is None
        assert isinstance(result.rtt_millis, int)
        assert result.rtt_millis >= 0
        mock_session.get.assert_called_once_with('https://example.com/cdn-cgi/trace')
        assert mock_cls.call_args.kwargs['headers'] == {'User-Agent': 'tracekey-test/1.0'}

    @pytest.mark.asyncio
    async def test_check_success_without_colo(self):
        """测试响应中没有 colo 时仍视为成功"""
        mock_response = Mock()
        mock_response.raise_for_status = Mock()
        mock_response.text = AsyncMock(return_value="fl=1\n")

        patcher, _ = mock_client_session(make_session(mock_response))
        try:
            result = await self.checker.check('https://example.com')
        finally:
            patcher.stop()

        assert result.success is True
        assert result.colo is None

    @pytest.mark.asyncio
    async def test_check_http_error_status(self):
        """测试非2xx状态码"""
        mock_response = Mock()
        mock_response.raise_for_status = Mock(side_effect=aiohttp.ClientResponseError(
            request_info=Mock(), history=(), status=503, message='Service Unavailable'))
        mock_response.text = AsyncMock(return_value='')

        patcher, _ = mock_client_session(make_session(mock_response))
        try:
            result = await self.checker.check('https://example.com')
        finally:
            patcher.stop()

        assert result.success is False
        assert '503' in result.error
        assert result.rtt_millis is None
        assert result.colo is None

    @pytest.mark.asyncio
    async def test_check_timeout(self):
        """测试请求超时"""
        patcher, _ = mock_client_session(make_session(side_effect=asyncio.TimeoutError()))
        try:
            result = await self.checker.check('https://example.com')
        finally:
            patcher.stop()

        assert result.success is False
        assert '超时' in result.error

    @pytest.mark.asyncio
    async def test_check_connection_error(self):
        """测试连接错误"""
        patcher, _ = mock_client_session(
            make_session(side_effect=aiohttp.ClientConnectionError("连接被拒绝")))
        try:
            result = await self.checker.check('https://example.com')
        finally:
            patcher.stop()

        assert result.success is False
        assert '连接被拒绝' in result.error

    @pytest.mark.asyncio
    async def test_check_invalid_url(self):
        """测试无效地址不发起请求"""
        with patch('aiohttp.ClientSession') as mock_cls:
            result = await self.checker.check('ftp://example.com')

        assert result.success is False
        assert result.url == 'ftp://example.com'
        mock_cls.assert_not_called()
