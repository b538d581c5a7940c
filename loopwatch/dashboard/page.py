"""
Operator page served at /
"""

DASHBOARD_HTML = """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Loopwatch Trading Monitor</title>
    <script src="https://unpkg.com/lightweight-charts@4.2.0/dist/lightweight-charts.standalone.production.js"></script>
    <style>
        * { margin: 0; padding: 0; box-sizing: border-box; }
        body {
            font-family: 'Segoe UI', system-ui, -apple-system, sans-serif;
            background: #f8fafc;
            color: #0f172a;
            min-height: 100vh;
        }
        .header {
            display: flex;
            justify-content: space-between;
            align-items: center;
            padding: 14px 24px;
            background: #ffffff;
            border-bottom: 1px solid #e2e8f0;
        }
        .header h1 { font-size: 1.3rem; font-weight: 600; }
        .header .symbols { font-family: monospace; font-size: 0.8rem; color: #475569; margin-top: 4px; }
        .header-stats { display: flex; gap: 24px; }
        .stat { text-align: right; }
        .stat-label { font-size: 0.65rem; text-transform: uppercase; letter-spacing: 0.2em; color: #94a3b8; }
        .stat-value { font-family: monospace; font-size: 1.1rem; font-weight: 600; }
        .status { font-size: 0.75rem; color: #64748b; }
        .status.connected { color: #059669; }
        .status.disconnected { color: #e11d48; }

        .main { display: flex; gap: 16px; padding: 16px 24px; }
        .card { background: #ffffff; border: 1px solid #e2e8f0; border-radius: 12px; padding: 16px; }
        .chart-card { flex: 1; min-width: 0; display: flex; flex-direction: column; }
        .chart-head { display: flex; justify-content: space-between; margin-bottom: 12px; font-size: 0.8rem; color: #475569; }
        .chart-head h2 { font-size: 1.1rem; color: #0f172a; }
        #chart { position: relative; height: 360px; }
        .placeholder { display: flex; align-items: center; justify-content: center; height: 100%; color: #94a3b8; }
        #tooltip {
            position: absolute;
            display: none;
            pointer-events: none;
            z-index: 50;
            padding: 6px 10px;
            border-radius: 8px;
            background: rgba(30, 41, 59, 0.92);
            color: #f8fafc;
            font-size: 12px;
            line-height: 1.4;
            border: 1px solid rgba(148, 163, 184, 0.35);
            box-shadow: 0 12px 32px rgba(15, 23, 42, 0.25);
            white-space: nowrap;
            transform: translate(-50%, -100%);
        }
        #tooltip .ts { font-size: 11px; color: #cbd5f5; margin-bottom: 2px; }
        #tooltip .val { font-weight: 600; }

        .sidebar { width: 380px; flex-shrink: 0; display: flex; flex-direction: column; gap: 16px; }
        .sidebar h3 { font-size: 0.9rem; margin-bottom: 8px; display: flex; justify-content: space-between; }
        .row { display: flex; justify-content: space-between; font-size: 0.75rem; padding: 6px 0; border-bottom: 1px solid #f1f5f9; }
        .summary { display: flex; gap: 12px; font-size: 0.75rem; color: #475569; margin-bottom: 8px; }
        .decision { font-size: 0.75rem; padding: 8px 0; border-bottom: 1px solid #f1f5f9; white-space: pre-wrap; }
        .decision .meta { color: #94a3b8; margin-bottom: 4px; }
        .empty { font-size: 0.75rem; color: #94a3b8; }
        .inline-error { font-size: 0.7rem; color: #e11d48; }

        .pnl-up { color: #059669; }
        .pnl-down { color: #e11d48; }
        .pnl-flat { color: #475569; }

        .health { display: flex; gap: 6px; flex-wrap: wrap; }
        .health span { font-size: 0.65rem; padding: 2px 8px; border-radius: 10px; }
        .health .healthy { background: #d1fae5; color: #065f46; }
        .health .degraded { background: #fef3c7; color: #92400e; }
        .health .unhealthy { background: #ffe4e6; color: #9f1239; }
        .health .unknown { background: #f1f5f9; color: #64748b; }
    </style>
</head>
<body>
    <div class="header">
        <div>
            <h1>Loopwatch Trading Monitor</h1>
            <div class="symbols" id="symbols">-</div>
            <div class="symbols" id="elapsed">-</div>
            <div class="status" id="status">Connecting...</div>
        </div>
        <div class="header-stats">
            <div class="stat"><div class="stat-label">Loop</div><div class="stat-value" id="loop-state">-</div></div>
            <div class="stat"><div class="stat-label">Total</div><div class="stat-value" id="total-balance">-</div></div>
            <div class="stat"><div class="stat-label">Return</div><div class="stat-value" id="return-percent">-</div></div>
            <div class="stat"><div class="stat-label">Max DD</div><div class="stat-value pnl-down" id="drawdown">-</div></div>
        </div>
    </div>

    <div class="main">
        <div class="card chart-card">
            <div class="chart-head">
                <h2>Equity Curve</h2>
                <div>
                    Initial: <span id="initial-balance">-</span> &middot;
                    Peak: <span id="peak-balance">-</span> &middot;
                    Current: <b id="current-balance">-</b>
                </div>
            </div>
            <div class="inline-error" id="equity-error"></div>
            <div id="chart"><div class="placeholder" id="chart-placeholder">Loading...</div></div>
        </div>

        <div class="sidebar">
            <div class="card">
                <h3>Endpoints</h3>
                <div class="health" id="health"></div>
            </div>
            <div class="card">
                <h3>Positions <span id="unrealized">-</span></h3>
                <div class="inline-error" id="positions-error"></div>
                <div id="positions"><div class="empty">Loading...</div></div>
            </div>
            <div class="card">
                <h3>Trades <span id="trade-count">0</span></h3>
                <div class="summary" id="trade-summary"></div>
                <div class="inline-error" id="trades-error"></div>
                <div id="trades"><div class="empty">Loading...</div></div>
            </div>
            <div class="card">
                <h3>AI Decisions <span id="decision-count">0</span></h3>
                <div class="inline-error" id="decisions-error"></div>
                <div id="decisions"><div class="empty">Loading...</div></div>
            </div>
        </div>
    </div>

    <script>
        const status = document.getElementById('status');
        const chartBox = document.getElementById('chart');
        let ws = null;
        let chart = null;
        let seriesById = {};
        let primaryId = null;
        let tooltip = null;
        let chartSurfaceId = null;

        const text = (id, value) => { document.getElementById(id).textContent = value; };
        const esc = (s) => String(s ?? '-').replace(/[&<>"]/g, c => ({'&': '&amp;', '<': '&lt;', '>': '&gt;', '"': '&quot;'}[c]));
        const money = (v) => (v === null || v === undefined) ? '-' : (v < 0 ? '-$' : '$') + Math.abs(v).toFixed(2);
        const send = (msg) => { if (ws && ws.readyState === WebSocket.OPEN) ws.send(JSON.stringify(msg)); };

        function teardownChart() {
            if (chart) {
                chart.unsubscribeCrosshairMove(onCrosshairMove);
                chart.remove();
            }
            if (tooltip && tooltip.parentNode) tooltip.parentNode.removeChild(tooltip);
            chart = null; tooltip = null; seriesById = {}; primaryId = null; chartSurfaceId = null;
        }

        function onCrosshairMove(param) {
            const seriesValue = primaryId && param.seriesData ? param.seriesData.get(seriesById[primaryId]) : null;
            send({
                type: 'crosshair',
                point: param.point ? {x: param.point.x, y: param.point.y} : null,
                time: param.time ?? null,
                series_value: seriesValue ?? null,
            });
        }

        function renderChart(data) {
            if (!data.surface) {
                teardownChart();
                chartBox.innerHTML = '<div class="placeholder">' + esc(data.placeholder) + '</div>';
                return;
            }
            const surface = data.surface;
            if (chartSurfaceId !== surface.id) {
                teardownChart();
                chartBox.innerHTML = '';
                chart = LightweightCharts.createChart(chartBox, {
                    width: chartBox.clientWidth,
                    height: chartBox.clientHeight,
                    layout: {background: {type: 'solid', color: '#ffffff'}, textColor: '#64748b'},
                    grid: {vertLines: {color: '#f1f5f9'}, horzLines: {color: '#f1f5f9'}},
                    timeScale: {timeVisible: true, secondsVisible: false},
                    crosshair: {mode: 1},
                });
                chartSurfaceId = surface.id;
                tooltip = document.createElement('div');
                tooltip.id = 'tooltip';
                chartBox.appendChild(tooltip);
                chart.subscribeCrosshairMove(onCrosshairMove);
                send({type: 'resize', width: chartBox.clientWidth, height: chartBox.clientHeight});
            }
            surface.series.forEach((s, i) => {
                if (!seriesById[s.id]) {
                    seriesById[s.id] = chart.addLineSeries({
                        color: s.options.color,
                        lineWidth: s.options.line_width,
                        lineStyle: s.options.line_style === 'dashed' ? 2 : 0,
                        lastValueVisible: s.options.last_value_visible,
                        priceLineVisible: s.options.last_value_visible,
                    });
                }
                if (i === 0) primaryId = s.id;
                seriesById[s.id].setData(s.data);
            });
            Object.keys(seriesById).forEach(id => {
                if (!surface.series.find(s => s.id === id)) {
                    chart.removeSeries(seriesById[id]);
                    delete seriesById[id];
                }
            });
            chart.timeScale().fitContent();
        }

        function renderTooltip(state) {
            if (!tooltip) return;
            if (!state.visible) { tooltip.style.display = 'none'; return; }
            tooltip.innerHTML = '<div class="ts">' + esc(state.timestamp_label) + '</div><div class="val">' + esc(state.value_label) + '</div>';
            tooltip.style.display = 'block';
            tooltip.style.left = state.x + 'px';
            tooltip.style.top = state.y + 'px';
        }

        function renderErrors(errors) {
            const map = {equity_curve: 'equity-error', positions: 'positions-error', trades: 'trades-error', decisions: 'decisions-error'};
            Object.entries(map).forEach(([name, id]) => text(id, errors[name] || ''));
        }

        function renderView(v) {
            const d = v.display;
            text('loop-state', d.loop_state);
            text('symbols', d.symbols.length ? d.symbols.join('  ') : '-');
            text('elapsed', d.elapsed_hours === '-' ? '-' : 'up ' + d.elapsed_hours + 'h, iteration ' + d.iteration);
            text('total-balance', d.total_balance);
            text('current-balance', d.total_balance);
            text('initial-balance', d.initial_balance);
            text('peak-balance', d.peak_balance);
            const ret = document.getElementById('return-percent');
            ret.textContent = d.return_percent;
            ret.className = 'stat-value ' + d.return_class;
            text('drawdown', d.drawdown_from_peak);
            text('unrealized', d.unrealized_pnl);

            document.getElementById('positions').innerHTML = v.positions.length
                ? v.positions.map(p => '<div class="row"><span>' + esc(p.symbol) + ' ' + esc(p.side) + ' x' + esc(p.leverage) +
                    '</span><span class="' + (p.unrealized_pnl > 0 ? 'pnl-up' : p.unrealized_pnl < 0 ? 'pnl-down' : 'pnl-flat') + '">' +
                    money(p.unrealized_pnl) + '</span></div>').join('')
                : '<div class="empty">No open positions</div>';

            const s = v.trade_stats;
            text('trade-count', s.total_trades);
            document.getElementById('trade-summary').innerHTML = s.total_trades > 0
                ? '<span>W ' + s.winning_trades + '</span><span>L ' + s.losing_trades + '</span><span>Win ' + d.win_rate +
                  '</span><span class="' + d.total_pnl_class + '">PnL ' + esc(d.total_pnl) + '</span>'
                : '';
            document.getElementById('trades').innerHTML = v.trades.length
                ? v.trades.slice(0, 30).map(t => '<div class="row"><span>' + esc(t.symbol) + ' ' + esc(t.type) + ' ' + esc(t.side) +
                    '</span><span>' + money(t.pnl) + '</span></div>').join('')
                : '<div class="empty">No trades</div>';

            text('decision-count', v.decisions_count);
            document.getElementById('decisions').innerHTML = d.decisions.length
                ? d.decisions.map(x => '<div class="decision"><div class="meta">#' + esc(x.iteration) + ' ' + esc(x.executed_at) +
                    '</div>' + esc(x.content) + '</div>').join('')
                : '<div class="empty">No decisions</div>';

            if (v.health) {
                document.getElementById('health').innerHTML = Object.values(v.health.endpoints)
                    .map(h => '<span class="' + h.status + '" title="' + esc(h.error || '') + '">' + esc(h.name) + '</span>').join('');
            }
            renderErrors(v.errors || {});
        }

        new ResizeObserver(() => {
            if (chart) {
                chart.applyOptions({width: chartBox.clientWidth, height: chartBox.clientHeight});
                send({type: 'resize', width: chartBox.clientWidth, height: chartBox.clientHeight});
            }
        }).observe(chartBox);

        function connect() {
            ws = new WebSocket(`ws://${window.location.host}/ws`);

            ws.onopen = () => {
                status.textContent = 'Connected';
                status.className = 'status connected';
            };

            ws.onclose = () => {
                status.textContent = 'Disconnected - Reconnecting...';
                status.className = 'status disconnected';
                teardownChart();
                setTimeout(connect, 2000);
            };

            ws.onerror = () => { ws.close(); };

            ws.onmessage = (event) => {
                const msg = JSON.parse(event.data);
                if (msg.type === 'view_model') {
                    renderView(msg.data);
                } else if (msg.type === 'chart') {
                    renderChart(msg.data);
                } else if (msg.type === 'tooltip') {
                    renderTooltip(msg.data);
                }
            };
        }

        connect();
    </script>
</body>
</html>
"""
