import os


class Configuration:

    def __init__(self):

        self.config = {}

        # font family settings

        self.config['plotting.font'] = [
            'Helvetica Neue LT Std', 
            'Helvetica', 
            'Arial', 
            'Ubuntu', 
            'Verdana'
        ]
        
        self.config['backend'] = 'Agg'
        self.config['n.jobs'] = 4
        self.config['seed'] = 42

        # motif selection by jackstraw. the reference run permutes 20% of the
        # motifs in each of the 1000 rounds, and keeps the motifs significant
        # on any of the leading 10 components.

        self.config['jackstraw.prop'] = 0.20
        self.config['jackstraw.npcs'] = 20
        self.config['jackstraw.iterations'] = 1000
        self.config['jackstraw.pcs.use'] = list(range(1, 11))
        self.config['jackstraw.pval'] = 0.1

        # differential peaks between motif high and motif low cells

        self.config['diff.normalize'] = True
        self.config['diff.binarize'] = False
        self.config['diff.quantile'] = 0.5
        self.config['diff.fdr'] = 1e-6

        # peak modules

        self.config['modules.k'] = 30
        self.config['modules.seed'] = 123
        self.config['modules.order'] = None

        # chromvar scoring of the modules

        self.config['scoring.enabled'] = False
        self.config['scoring.iterations'] = 500
        self.config['scoring.fasta'] = None
        self.config['scoring.gc'] = 'gc'


    def __getitem__(self, index):
        return self.config[index]
    

    def __contains__(self, index):
        return index in self.config
    

    def update(self, conf):
        for key in conf:
            if key in self.config:
                self.config[key] = conf[key]
    

    def update_config(self, conf_name, value):
        self.config[conf_name] = value


    def load(self, fname):
        import json
        with open(fname, 'r') as f:
            self.update(json.load(f))


default = Configuration()

# rc files looked up at import, the first one found is loaded.
default_finders = [
    'chrmod.config',
    '.chrmod.config',
    '.chrmodrc',
    os.path.join(os.path.expanduser('~'), 'chrmod.config'),
    os.path.join(os.path.expanduser('~'), '.chrmod.config'),
    os.path.join(os.path.expanduser('~'), '.chrmodrc')
]
