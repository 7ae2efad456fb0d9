"""主应用程序测试"""

import pytest
import yaml
from unittest.mock import AsyncMock, patch

from main import TracekeyApp, create_argument_parser, main
from tracekey.models.settings import Settings, ReportingSettings


def write_config(tmp_path, **overrides):
    config = {
        'target_urls': ['https://a.example.com'],
        'output_path': str(tmp_path / 'results' / 'results.jsonl'),
        'state_file': str(tmp_path / 'state' / 'last_success.json'),
        'reporting': {'enabled': True, 'interval': '1h', 'output_to_console': False},
    }
    config.update(overrides)
    path = tmp_path / 'base.yaml'
    path.write_text(yaml.safe_dump(config), encoding='utf-8')
    return str(path)


class TestArgumentParser:
    """命令行参数测试类"""

    def test_defaults(self):
        """测试默认参数"""
        args = create_argument_parser().parse_args([])

        assert args.config_file == 'config/base.yaml'
        assert args.report is False
        assert args.dry_run is False
        assert args.since is None

    def test_report_window(self):
        """测试报告时间范围解析"""
        args = create_argument_parser().parse_args([
            '--report', '--since', '2024-05-01T00:00:00Z', '--until', '2024-05-02T00:00:00Z'
        ])

        assert args.report is True
        assert args.since.isoformat() == '2024-05-01T00:00:00+00:00'
        assert args.until > args.since

    def test_invalid_timestamp(self):
        """测试无效的时间参数"""
        with pytest.raises(SystemExit):
            create_argument_parser().parse_args(['--since', 'yesterday'])


class TestTracekeyApp:
    """主应用程序类测试"""

    def test_initialize_without_token(self, tmp_path):
        """测试未配置token时不创建通知器"""
        settings = Settings(target_urls=['https://a.example.com'],
                            state_file=str(tmp_path / 'state.json'),
                            output_path=str(tmp_path / 'results.jsonl'))
        app = TracekeyApp(settings)
        app.initialize()

        assert app.alerter is None
        assert app.monitor_scheduler is not None
        assert app.get_status()['notifications_configured'] is False

    def test_initialize_with_token(self, tmp_path):
        """测试配置token时创建通知器"""
        settings = Settings(target_urls=['https://a.example.com'],
                            misskey_url='https://misskey.example.com',
                            misskey_token='secret',
                            reporting=ReportingSettings(misskey_visibility='public'))
        app = TracekeyApp(settings)
        app.initialize()

        assert app.alerter is not None
        assert app.alerter.visibility == 'public'
        assert app.get_status()['alerter']['type'] == 'misskey'


class TestMain:
    """主函数测试类"""

    @pytest.mark.asyncio
    async def test_validate(self, tmp_path, capsys):
        """测试验证配置"""
        config_path = write_config(tmp_path)

        exit_code = await main([config_path, '--local-config', str(tmp_path / 'none.yaml'),
                                '--validate'])

        assert exit_code == 0
        assert '配置文件验证成功' in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_missing_config(self, tmp_path, capsys):
        """测试配置文件不存在"""
        exit_code = await main([str(tmp_path / 'missing.yaml')])

        assert exit_code == 1
        assert '配置错误' in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_invalid_config(self, tmp_path):
        """测试配置验证失败"""
        config_path = write_config(tmp_path, target_urls=[])

        assert await main([config_path, '--validate']) == 1

    @pytest.mark.asyncio
    async def test_report_without_data(self, tmp_path):
        """测试没有数据时生成报告"""
        config_path = write_config(tmp_path)

        exit_code = await main([config_path, '--local-config', str(tmp_path / 'none.yaml'),
                                '--report', '--dry-run'])

        assert exit_code == 0

    @pytest.mark.asyncio
    async def test_check_once(self, tmp_path):
        """测试执行一次检查"""
        config_path = write_config(tmp_path)

        with patch('main.TracekeyApp.check_once', new_callable=AsyncMock,
                   return_value=True) as mock_check:
            exit_code = await main([config_path, '--local-config', str(tmp_path / 'none.yaml'),
                                    '--check-once'])

        assert exit_code == 0
        mock_check.assert_awaited_once()
