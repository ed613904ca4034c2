"""Static analytics dashboard served at ``/analytics/dashboard``.

The page is self-contained: it fetches ``/analytics`` (relative to its own
mount point) and renders counters and Chart.js charts client-side.
"""

DASHBOARD_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Plausible Analytics MCP Server - Usage</title>
  <script src="https://cdn.jsdelivr.net/npm/chart.js@4.4.0/dist/chart.umd.min.js"></script>
  <style>
    body { font-family: system-ui, sans-serif; margin: 0; padding: 24px;
           background: #111318; color: #e5e7eb; }
    h1 { font-size: 1.5rem; margin: 0 0 4px; color: #8b8cf6; }
    .muted { color: #9ca3af; font-size: 0.85rem; }
    .badge { padding: 2px 8px; border-radius: 999px; font-size: 0.75rem; }
    .badge.on { background: #14532d; color: #86efac; }
    .badge.off { background: #422006; color: #fcd34d; }
    .cards { display: grid; grid-template-columns: repeat(auto-fit, minmax(180px, 1fr));
             gap: 12px; margin: 20px 0; }
    .card, .panel { background: #1b1e25; border: 1px solid #2a2f3a;
                    border-radius: 10px; padding: 16px; }
    .card .value { font-size: 1.8rem; font-weight: 700; color: #8b8cf6; }
    .charts { display: grid; grid-template-columns: repeat(auto-fit, minmax(380px, 1fr));
              gap: 16px; margin-bottom: 20px; }
    .panel h2 { font-size: 0.8rem; text-transform: uppercase; color: #9ca3af;
                margin: 0 0 12px; }
    .chart { position: relative; height: 240px; }
    table { width: 100%; border-collapse: collapse; font-size: 0.85rem; }
    td { padding: 6px 4px; border-bottom: 1px solid #2a2f3a; }
    td.tool { color: #8b8cf6; font-weight: 600; }
  </style>
</head>
<body>
  <h1>Plausible Analytics MCP Server</h1>
  <div class="muted"><span id="uptime">Loading...</span> <span id="storage"></span></div>

  <div class="cards">
    <div class="card"><div class="value" id="totalRequests">-</div>
      <div class="muted">Total requests</div></div>
    <div class="card"><div class="value" id="totalToolCalls">-</div>
      <div class="muted">Tool calls</div></div>
    <div class="card"><div class="value" id="uniqueClients">-</div>
      <div class="muted">Unique clients</div></div>
    <div class="card"><div class="value" id="topTool">-</div>
      <div class="muted">Most used tool</div></div>
  </div>

  <div class="charts">
    <div class="panel"><h2>Tool usage</h2><div class="chart"><canvas id="tools"></canvas></div></div>
    <div class="panel"><h2>Requests per hour (24h)</h2><div class="chart"><canvas id="hourly"></canvas></div></div>
    <div class="panel"><h2>Requests by endpoint</h2><div class="chart"><canvas id="endpoints"></canvas></div></div>
    <div class="panel"><h2>User agents</h2><div class="chart"><canvas id="agents"></canvas></div></div>
  </div>

  <div class="panel">
    <h2>Recent tool calls</h2>
    <table><tbody id="recent"><tr><td class="muted">Loading...</td></tr></tbody></table>
  </div>

  <script>
    const palette = ['#8b8cf6', '#38bdf8', '#f472b6', '#fbbf24', '#34d399',
                     '#22d3ee', '#fb7185', '#a3e635', '#818cf8', '#2dd4bf'];
    const charts = {};

    function draw(id, type, labels, values, options) {
      if (charts[id]) charts[id].destroy();
      charts[id] = new Chart(document.getElementById(id), {
        type: type,
        data: { labels: labels, datasets: [{ data: values, backgroundColor: palette,
                borderColor: '#8b8cf6', fill: type === 'line', tension: 0.3 }] },
        options: Object.assign({ responsive: true, maintainAspectRatio: false,
                 plugins: { legend: { display: type === 'doughnut' } } }, options || {})
      });
    }

    function escapeHtml(text) {
      const div = document.createElement('div');
      div.textContent = text;
      return div.innerHTML;
    }

    function render(data) {
      const s = data.summary;
      document.getElementById('totalRequests').textContent = s.totalRequests.toLocaleString();
      document.getElementById('totalToolCalls').textContent = s.totalToolCalls.toLocaleString();
      document.getElementById('uniqueClients').textContent = s.uniqueClients.toLocaleString();
      document.getElementById('uptime').textContent = 'Uptime ' + data.uptime;
      const storage = document.getElementById('storage');
      storage.className = 'badge ' + (data.firebase === 'enabled' ? 'on' : 'off');
      storage.textContent = data.firebase === 'enabled' ? 'Firebase' : 'Local only';

      const tools = Object.entries(data.breakdown.byTool);
      document.getElementById('topTool').textContent = tools.length ? tools[0][0] : '-';
      draw('tools', 'doughnut', tools.slice(0, 10).map(t => t[0]),
           tools.slice(0, 10).map(t => t[1]));

      const hours = Object.entries(data.hourlyRequests);
      draw('hourly', 'line', hours.map(h => h[0].slice(11) + ':00'), hours.map(h => h[1]),
           { scales: { y: { beginAtZero: true } } });

      const endpoints = Object.entries(data.breakdown.byEndpoint);
      draw('endpoints', 'bar', endpoints.map(e => e[0]), endpoints.map(e => e[1]),
           { scales: { y: { beginAtZero: true } } });

      const agents = Object.entries(data.clients.byUserAgent)
        .sort((a, b) => b[1] - a[1]).slice(0, 5);
      draw('agents', 'bar', agents.map(a => a[0].slice(0, 30)), agents.map(a => a[1]),
           { indexAxis: 'y' });

      const rows = data.recentToolCalls.map(call =>
        '<tr><td class="tool">' + escapeHtml(call.tool) + '</td>' +
        '<td class="muted">' + escapeHtml(call.clientIp) + '</td>' +
        '<td class="muted">' + new Date(call.timestamp).toLocaleString() + '</td></tr>');
      document.getElementById('recent').innerHTML =
        rows.join('') || '<tr><td class="muted">No tool calls yet</td></tr>';
    }

    async function refresh() {
      const base = window.location.pathname.replace(/\\/analytics\\/dashboard\\/?$/, '');
      try {
        const res = await fetch(base + '/analytics');
        render(await res.json());
      } catch (err) {
        console.error('Failed to load analytics', err);
      }
    }

    refresh();
    setInterval(refresh, 30000);
  </script>
</body>
</html>
"""
